"""Unit tests for the parameter collector (validator stage)."""

import pytest
from typing import List, Optional

from config.errors import ErrorCode, LandQuoteError
from models.service_request import (
    CollectionResult,
    CollectionStatus,
    RawService,
)
from models.validation_patch import PatchedService, ValidationPatch
from services.ai_validation_service import ServiceValidator
from services.parameter_collector import (
    MORE_DETAILS_QUESTION,
    NO_SERVICES_MISSING,
    NO_SERVICES_QUESTION,
    READY_RESPONSE,
    ParameterCollectorService,
)
from services.special_requirements import (
    BORING_MISSING,
    BORING_QUESTION,
    ZONE_COUNT_MISSING,
)
from tests.fixtures.mock_quote_data import (
    get_irrigation_services,
    get_mulch_and_edging_services,
    make_ready_collection,
)


class StubValidator(ServiceValidator):
    """Returns a fixed patch or raises a fixed error."""

    def __init__(self, patch: Optional[ValidationPatch] = None, error: Optional[Exception] = None):
        self.patch = patch
        self.error = error
        self.calls = 0

    async def validate(self, services: List[RawService], message: str) -> Optional[ValidationPatch]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.patch


def _by_name(result: CollectionResult):
    return {service.name: service for service in result.services}


class TestCollectParameters:
    """Tests for collect_parameters."""

    @pytest.mark.asyncio
    async def test_complete_request_is_ready(self, collector):
        result = await collector.collect_parameters(
            "45 sq ft triple ground mulch and 3 feet metal edging"
        )

        assert result.status == CollectionStatus.READY_FOR_PRICING
        assert result.is_ready
        assert result.missing_info == []
        assert result.clarifying_questions == []
        assert result.confidence == pytest.approx(1.0)
        assert result.suggested_response == READY_RESPONSE

        services = _by_name(result)
        assert services["Triple Ground Mulch"].row == 23
        assert services["Triple Ground Mulch"].category == "materials"
        assert services["Triple Ground Mulch"].is_complete is True
        assert services["Metal Edging"].quantity == 3

    @pytest.mark.asyncio
    async def test_nothing_recognized(self, collector):
        result = await collector.collect_parameters("hello there")

        assert result.status == CollectionStatus.INCOMPLETE
        assert result.services == []
        assert result.missing_info == [NO_SERVICES_MISSING]
        assert result.clarifying_questions == [NO_SERVICES_QUESTION]
        assert result.confidence == 0.0
        assert result.unmapped_text == ["hello there"]

    @pytest.mark.asyncio
    async def test_missing_quantity(self, collector):
        result = await collector.collect_parameters("some mulch please")

        assert result.status == CollectionStatus.INCOMPLETE
        assert result.missing_info == ["Quantity for Triple Ground Mulch"]
        assert result.clarifying_questions == [
            "How much Triple Ground Mulch do you need (in sqft)?"
        ]
        assert "- Triple Ground Mulch: ? sqft" in result.suggested_response

    @pytest.mark.asyncio
    async def test_low_overall_confidence_asks_for_details(self, collector):
        result = await collector.collect_parameters("mulchbed 200")

        assert result.missing_info == []
        assert result.confidence < 0.85
        assert result.status == CollectionStatus.INCOMPLETE
        assert result.clarifying_questions == [MORE_DETAILS_QUESTION]

    @pytest.mark.asyncio
    async def test_irrigation_without_boring_answer(self, collector):
        result = await collector.collect_parameters("irrigation setup with 2 turf zones")

        assert result.status == CollectionStatus.INCOMPLETE
        assert result.missing_info == [BORING_MISSING]
        assert result.clarifying_questions == [BORING_QUESTION]
        assert result.confidence == pytest.approx(0.95)

        service = _by_name(result)["Irrigation Set Up Cost"]
        assert service.quantity == 1
        assert service.is_special is True
        assert service.confidence == pytest.approx(0.9)
        assert service.special_requirements.zones.turf == 2
        assert service.special_requirements.boring is None

        assert "1. " + BORING_QUESTION in result.suggested_response
        assert "- Irrigation Set Up Cost: 1 setup" in result.suggested_response

    @pytest.mark.asyncio
    async def test_irrigation_complete(self, collector):
        result = await collector.collect_parameters(
            "irrigation setup with 3 turf zones and 1 drip zone, no boring"
        )

        assert result.status == CollectionStatus.READY_FOR_PRICING
        zones = result.services[0].special_requirements.zones
        assert (zones.turf, zones.drip, zones.total) == (3, 1, 4)

    @pytest.mark.asyncio
    async def test_special_service_skips_generic_quantity_question(self, collector):
        result = await collector.collect_parameters("sprinklers for the yard")

        assert result.missing_info == [ZONE_COUNT_MISSING, BORING_MISSING]
        assert not any(item.startswith("Quantity for") for item in result.missing_info)

    @pytest.mark.asyncio
    async def test_noop_validator_by_default(self, catalog):
        collector = ParameterCollectorService(catalog)

        result = await collector.collect_parameters("45 sqft of mulch")

        assert result.is_ready


class TestAIValidation:
    """Tests for applying the advisory AI patch."""

    @pytest.mark.asyncio
    async def test_added_service_capped_at_validation_confidence(self, catalog):
        patch = ValidationPatch(
            validated_services=[
                PatchedService(service_name="Topsoil", quantity=2, unit="cubic yards", confidence=0.95)
            ],
            validation_confidence=0.9
        )
        collector = ParameterCollectorService(catalog, validator=StubValidator(patch=patch))

        result = await collector.collect_parameters("45 sqft of mulch")

        topsoil = _by_name(result)["Topsoil"]
        assert topsoil.quantity == 2
        assert topsoil.unit == "cubic_yards"
        assert topsoil.confidence == pytest.approx(0.9)
        assert result.confidence == pytest.approx(0.9)
        assert result.is_ready

    @pytest.mark.asyncio
    async def test_incompatible_unit_drops_quantity(self, catalog):
        patch = ValidationPatch(
            validated_services=[
                PatchedService(service_name="Metal Edging", quantity=40, unit="sqft", confidence=0.9)
            ],
            validation_confidence=0.9
        )
        collector = ParameterCollectorService(catalog, validator=StubValidator(patch=patch))

        result = await collector.collect_parameters("45 sqft of mulch")

        assert _by_name(result)["Metal Edging"].quantity == 0
        assert "Quantity for Metal Edging" in result.missing_info

    @pytest.mark.asyncio
    async def test_patch_can_only_lower_existing_confidence(self, catalog):
        patch = ValidationPatch(
            validated_services=[
                PatchedService(service_name="triple ground mulch", quantity=45, confidence=0.5),
                PatchedService(service_name="Metal Edging", quantity=3, confidence=1.0),
            ],
            validation_confidence=1.0
        )
        collector = ParameterCollectorService(catalog, validator=StubValidator(patch=patch))

        result = await collector.collect_parameters("45 sqft of mulch and 3 feet metal edging")

        services = _by_name(result)
        assert services["Triple Ground Mulch"].confidence == pytest.approx(0.5)
        assert services["Metal Edging"].confidence == pytest.approx(1.0)
        assert "Confirmation of Triple Ground Mulch" in result.missing_info
        assert result.status == CollectionStatus.INCOMPLETE

    @pytest.mark.asyncio
    async def test_missed_service_resolved_through_synonyms(self, catalog):
        patch = ValidationPatch(missed_services=["rock edging", "hot tub"], validation_confidence=0.8)
        collector = ParameterCollectorService(catalog, validator=StubValidator(patch=patch))

        result = await collector.collect_parameters("45 sqft of mulch")

        services = _by_name(result)
        assert set(services) == {"Triple Ground Mulch", "Stone Edgers Tumbled"}
        assert services["Stone Edgers Tumbled"].quantity == 0
        assert services["Stone Edgers Tumbled"].confidence == pytest.approx(0.8)
        assert result.confidence == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_validator_failure_discounts_confidence(self, catalog):
        validator = StubValidator(error=LandQuoteError(ErrorCode.LLM_ERROR, "timeout"))
        collector = ParameterCollectorService(catalog, validator=validator)

        result = await collector.collect_parameters(
            "45 sq ft triple ground mulch and 3 feet metal edging"
        )

        assert validator.calls == 1
        assert result.confidence == pytest.approx(0.9)
        assert result.is_ready
        assert len(result.services) == 2

    @pytest.mark.asyncio
    async def test_unexpected_validator_error_is_not_fatal(self, catalog):
        collector = ParameterCollectorService(
            catalog, validator=StubValidator(error=RuntimeError("boom"))
        )

        result = await collector.collect_parameters("some mulch please")

        assert result.confidence == pytest.approx(0.9)
        assert result.missing_info == ["Quantity for Triple Ground Mulch"]


class TestFollowUp:
    """Tests for multi-turn collection."""

    @pytest.mark.asyncio
    async def test_follow_up_supplies_quantity(self, collector):
        first = await collector.collect_parameters("some mulch please")

        second = await collector.process_follow_up("45 sqft of mulch", first)

        assert second.is_ready
        assert _by_name(second)["Triple Ground Mulch"].quantity == 45

    @pytest.mark.asyncio
    async def test_follow_up_adds_service(self, collector):
        first = await collector.collect_parameters("45 sqft triple ground mulch")

        second = await collector.process_follow_up("and 10 feet metal edging", first)

        services = _by_name(second)
        assert services["Triple Ground Mulch"].quantity == 45
        assert services["Metal Edging"].quantity == 10
        assert second.is_ready

    def test_combined_context(self):
        previous = CollectionResult(services=get_mulch_and_edging_services())

        context = ParameterCollectorService.build_combined_context(previous, "add sod")

        assert context == (
            "Previous services mentioned: Triple Ground Mulch 45 sqft, Metal Edging 3 linear feet"
            "\n\nNew message: add sod"
        )

    @pytest.mark.asyncio
    async def test_follow_up_answers_boring_keeps_zones(self, collector):
        first = await collector.collect_parameters("irrigation setup with 2 turf zones")
        assert first.missing_info == [BORING_MISSING]

        second = await collector.process_follow_up("no boring needed", first)

        assert second.status == CollectionStatus.READY_FOR_PRICING
        assert second.missing_info == []
        requirements = _by_name(second)["Irrigation Set Up Cost"].special_requirements
        assert (requirements.zones.turf, requirements.zones.drip, requirements.zones.total) == (2, 0, 2)
        assert requirements.boring is False

    @pytest.mark.asyncio
    async def test_follow_up_does_not_reparse_summary_quantities(self, collector):
        first = await collector.collect_parameters(
            "irrigation with 2 turf zones and 3 drip zones, no boring"
        )
        assert first.is_ready

        second = await collector.process_follow_up("thanks", first)

        assert second.is_ready
        service = _by_name(second)["Irrigation (per zone)"]
        zones = service.special_requirements.zones
        assert (zones.turf, zones.drip, zones.total) == (2, 3, 5)
        assert service.quantity == 5
        assert service.confidence == pytest.approx(first.services[0].confidence)

    @pytest.mark.asyncio
    async def test_follow_up_completes_irrigation(self, collector):
        first = await collector.collect_parameters("irrigation setup")
        assert first.missing_info == [ZONE_COUNT_MISSING, BORING_MISSING]

        second = await collector.process_follow_up("2 turf zones, no boring", first)

        assert second.status == CollectionStatus.READY_FOR_PRICING
        assert second.confidence >= collector.completion_threshold
        assert MORE_DETAILS_QUESTION not in second.clarifying_questions
        service = _by_name(second)["Irrigation Set Up Cost"]
        assert service.confidence == pytest.approx(0.9)
        assert service.special_requirements.zones.turf == 2

    @pytest.mark.asyncio
    async def test_follow_up_zone_service_inherits_setup_fields(self, collector):
        first = await collector.collect_parameters("irrigation setup with 2 turf zones, no boring")

        second = await collector.process_follow_up("also the sprinkler zones", first)

        zones = _by_name(second)["Irrigation (per zone)"].special_requirements.zones
        assert zones.total == 2
        assert ZONE_COUNT_MISSING not in second.missing_info

    def test_carry_forward_rechecks_unmentioned_services(self, collector):
        previous = make_ready_collection(get_irrigation_services(turf=2, drip=1, boring=True))

        carried = collector.carry_forward(previous, [], "actually no boring")

        services = {service.name: service for service in carried}
        assert set(services) == {"Irrigation Set Up Cost", "Irrigation (per zone)"}
        zone = services["Irrigation (per zone)"]
        assert zone.quantity == 3
        assert zone.special_requirements.boring is False
        assert zone.special_requirements.zones.drip == 1
        assert zone.confidence == pytest.approx(1.0)

    def test_carry_forward_skips_restated_services(self, collector):
        previous = CollectionResult(services=get_mulch_and_edging_services())
        current = [previous.services[0]]

        carried = collector.carry_forward(previous, current, "and 3 feet metal edging")

        assert [service.name for service in carried] == ["Metal Edging"]
        assert carried[0].quantity == 3

    def test_combined_context_without_services(self):
        context = ParameterCollectorService.build_combined_context(CollectionResult(), "mulch")

        assert context.startswith("Previous services mentioned: none clearly identified")


class TestServiceSteps:
    """Tests for per-service validation and binding."""

    def test_validate_service_missing_quantity(self, collector):
        raw = RawService(name="Paver Patio", quantity=0, unit="sqft", confidence=0.95)

        validated = collector.validate_service(raw)

        assert validated.is_complete is False
        assert validated.missing_info == ["Quantity for Paver Patio"]

    def test_validate_service_quantity_check_skipped(self, collector):
        raw = RawService(name="Irrigation (per zone)", quantity=0, unit="zone", confidence=0.95)

        assert collector.validate_service(raw, check_quantity=False).is_complete is True

    def test_bind_unknown_service(self, collector):
        validated = collector.validate_service(
            RawService(name="Hot Tub", quantity=1, unit="each", confidence=0.9)
        )

        assert collector.bind_service(validated) is None

    def test_ready_result_cannot_carry_missing_info(self):
        with pytest.raises(ValueError):
            CollectionResult(
                status=CollectionStatus.READY_FOR_PRICING,
                missing_info=["Quantity for Paver Patio"]
            )

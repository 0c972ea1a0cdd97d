"""Pytest configuration and shared fixtures for LandQuote tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Ensure local imports work (models/, services/, config/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `functions/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client.

    Chain: client.collection().document().collection().stream()
    """
    from tests.fixtures.mock_quote_data import make_snapshot

    client = MagicMock()

    collection_mock = MagicMock()
    document_mock = MagicMock()
    subcollection_mock = MagicMock()

    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock
    document_mock.collection.return_value = subcollection_mock

    document_mock.get = AsyncMock(return_value=make_snapshot(
        "company-1",
        {"name": "Green Acres Landscaping"}
    ))
    subcollection_mock.stream = AsyncMock(return_value=[])

    return client


@pytest.fixture
def mock_firestore_service(mock_firestore_client):
    """Mock FirestoreService with mocked client."""
    from services.firestore_service import FirestoreService

    service = FirestoreService(db=mock_firestore_client)
    return service


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content='{"validated_services": [], "missed_services": [], "validation_confidence": 0.9}',
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """Mock LLMService."""
    from services.llm_service import LLMService

    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(model="gpt-4o-mini", temperature=0.1, api_key="test-api-key", retry_wait=0)
        service._client = mock_chat_openai
        return service


# ============================================================================
# Catalog / Pricing Fixtures
# ============================================================================

@pytest.fixture
def catalog():
    """Built-in service catalog."""
    from services.catalog_data import build_default_catalog

    return build_default_catalog()


@pytest.fixture
def pricing_config():
    """Default company pricing config (all variables at zero-effect defaults)."""
    from services.catalog_data import build_default_pricing_config

    return build_default_pricing_config("company-1")


@pytest.fixture
def mapping_engine(catalog):
    """Recognizer over the built-in catalog."""
    from services.service_mapping_engine import ServiceMappingEngine

    return ServiceMappingEngine(catalog)


@pytest.fixture
def collector(catalog):
    """Collector with the no-op AI validator."""
    from services.parameter_collector import ParameterCollectorService

    return ParameterCollectorService(catalog)


@pytest.fixture
def static_repository(catalog):
    """Config repository serving the built-in defaults."""
    from services.config_repository import StaticConfigRepository

    return StaticConfigRepository(catalog=catalog)


@pytest.fixture
def mulch_and_edging_collection():
    """45 sqft mulch plus 3 linear feet of metal edging, ready to price."""
    from tests.fixtures.mock_quote_data import get_mulch_and_edging_services, make_ready_collection

    return make_ready_collection(get_mulch_and_edging_services())


# ============================================================================
# Settings Mock
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings for all tests."""
    with patch('config.settings.settings') as mock:
        mock.openai_api_key = "test-api-key"
        mock.llm_model = "gpt-4o-mini"
        mock.llm_temperature = 0.1
        mock.firebase_project_id = "landquote-test"
        mock.use_firebase_emulators = True
        mock.is_emulator_mode = True
        mock.firestore_emulator_host = "localhost:8081"
        mock.recognition_confidence_threshold = 0.7
        mock.completion_threshold = 0.85
        mock.special_service_discount = 0.9
        mock.implicit_unit_discount = 0.9
        mock.ai_failure_discount = 0.9
        mock.ai_validation_enabled = False
        mock.log_level = "INFO"
        yield mock

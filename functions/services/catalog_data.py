"""Built-in reference data for LandQuote.

Default service catalog (rows 2-33 of the legacy estimating sheet), the
synonym table used by the recognizer, the default variable tree, and the
default company pricing configuration. Everything here is plain data; the
builders return fresh model instances so callers never share state.
"""

from copy import deepcopy
from typing import Any, Dict, List

from models.pricing_config import (
    CompanyPricingConfig,
    IrrigationRateSchedule,
    ServicePricingConfig,
    VariableConfig,
)
from models.service_catalog import ServiceCatalog, SynonymTable
from services.text_normalizer import canonicalize_phrase


IRRIGATION_SETUP_SERVICE = "Irrigation Set Up Cost"
IRRIGATION_ZONE_SERVICE = "Irrigation (per zone)"


# =============================================================================
# SERVICE CATALOG
# =============================================================================


SERVICE_ROWS: List[Dict[str, Any]] = [
    # Hardscape
    {"name": "Paver Patio", "row": 2, "unit": "sqft", "category": "hardscape"},
    {"name": "3' Retaining Wall", "row": 3, "unit": "linear_feet", "category": "hardscape"},
    {"name": "5' Retaining Wall", "row": 4, "unit": "linear_feet", "category": "hardscape"},
    {"name": "2' Garden Wall", "row": 5, "unit": "linear_feet", "category": "hardscape"},
    {"name": "Flagstone Steppers", "row": 6, "unit": "each", "category": "hardscape"},
    # Drainage
    {"name": "Dry Creek", "row": 7, "unit": "sqft", "category": "drainage"},
    {"name": "Buried Downspout", "row": 8, "unit": "each", "category": "drainage"},
    {"name": "Drainage Burying", "row": 9, "unit": "linear_feet", "category": "drainage"},
    {"name": "EZ Flow French Drain", "row": 10, "unit": "section", "category": "drainage"},
    {"name": "Flow Well Drainage", "row": 11, "unit": "each", "category": "drainage"},
    # Structures
    {"name": "Outdoor Kitchen", "row": 12, "unit": "linear_feet", "category": "structures"},
    {"name": "Intellishade Pergola", "row": 13, "unit": "sqft", "category": "structures"},
    {"name": "Cedar Pergola", "row": 14, "unit": "sqft", "category": "structures"},
    # Irrigation (special handling)
    {"name": IRRIGATION_SETUP_SERVICE, "row": 15, "unit": "setup", "category": "irrigation", "isSpecial": True},
    {"name": IRRIGATION_ZONE_SERVICE, "row": 16, "unit": "zone", "category": "irrigation", "isSpecial": True},
    # Sod / seed
    {"name": "Sod Install", "row": 17, "unit": "sqft", "category": "planting"},
    {"name": "Seed/Straw", "row": 18, "unit": "sqft", "category": "planting"},
    {"name": "Sod Removal", "row": 19, "unit": "sqft", "category": "planting"},
    # Edging
    {"name": "Stone Edgers Tumbled", "row": 20, "unit": "linear_feet", "category": "edging"},
    {"name": "Metal Edging", "row": 21, "unit": "linear_feet", "category": "edging"},
    {"name": "Spade Edging", "row": 22, "unit": "linear_feet", "category": "edging"},
    # Materials
    {"name": "Triple Ground Mulch", "row": 23, "unit": "sqft", "category": "materials"},
    {"name": "Iowa Rainbow Rock Bed", "row": 24, "unit": "sqft", "category": "materials"},
    {"name": "Topsoil", "row": 25, "unit": "cubic_yards", "category": "materials"},
    # Plants
    {"name": "Annuals 4\"", "row": 26, "unit": "sqft", "category": "planting"},
    {"name": "Annuals 10\"", "row": 27, "unit": "sqft", "category": "planting"},
    {"name": "Perennial", "row": 28, "unit": "each", "category": "planting"},
    {"name": "Medium Shrub", "row": 29, "unit": "each", "category": "planting"},
    {"name": "Large Shrub", "row": 30, "unit": "each", "category": "planting"},
    {"name": "Small Tree", "row": 31, "unit": "each", "category": "planting"},
    {"name": "Medium Tree", "row": 32, "unit": "each", "category": "planting"},
    {"name": "Large Tree", "row": 33, "unit": "each", "category": "planting"},
]


# Phrases are matched longest first, so a general phrase ("edging") may sit
# inside a more specific one owned by another service ("stone edging").
SERVICE_SYNONYMS: SynonymTable = {
    "Paver Patio": ["paver patio", "brick patio", "stone patio", "patio", "pavers", "paver"],
    "3' Retaining Wall": ["3 foot retaining wall", "3 ft retaining wall", "short retaining wall"],
    "5' Retaining Wall": [
        "5 foot retaining wall", "5 ft retaining wall", "tall retaining wall", "retaining wall"
    ],
    "2' Garden Wall": ["garden wall", "garden walls", "seat wall"],
    "Flagstone Steppers": ["flagstone", "flag stone", "stepping stones", "steppers"],
    "Dry Creek": ["dry creek", "creek bed", "dry stream", "decorative drainage"],
    "Buried Downspout": ["buried downspout", "downspout", "drainage downspout", "gutter drainage"],
    "Drainage Burying": ["drainage burying", "buried drainage", "drain line", "drain tile"],
    "EZ Flow French Drain": ["french drain", "ez flow"],
    "Flow Well Drainage": ["flow well", "dry well"],
    "Outdoor Kitchen": ["outdoor kitchen", "grill island", "bbq island"],
    "Intellishade Pergola": ["intellishade", "louvered pergola"],
    "Cedar Pergola": ["cedar pergola", "pergola"],
    IRRIGATION_SETUP_SERVICE: [
        "irrigation setup", "irrigation installation", "irrigation system setup", "sprinkler setup"
    ],
    IRRIGATION_ZONE_SERVICE: [
        "irrigation", "watering system", "irrigation zones", "sprinkler zones", "sprinklers"
    ],
    "Sod Install": ["sod", "new sod", "sod installation", "new lawn"],
    "Seed/Straw": ["seed", "grass seed", "straw", "seeding"],
    "Sod Removal": ["sod removal", "remove sod", "remove grass", "grass removal"],
    "Stone Edgers Tumbled": ["stone edging", "rock edging", "stone border", "tumbled stone edging", "stone edgers"],
    "Metal Edging": ["edging", "metal edge", "metal edging", "steel edging", "aluminum edging", "landscape edging"],
    "Spade Edging": ["spade edge", "spade edging", "cut edging", "hand edging", "natural edging"],
    "Triple Ground Mulch": [
        "triple ground mulch", "mulch", "triple ground", "wood chips", "mulching", "bark mulch", "wood mulch"
    ],
    "Iowa Rainbow Rock Bed": ["rainbow rock", "decorative rock", "landscape rock", "colored gravel", "rock bed"],
    "Topsoil": ["topsoil", "soil", "dirt", "garden soil", "planting soil"],
    "Annuals 4\"": ["annuals", "annual flowers", "4 inch annuals", "bedding plants"],
    "Annuals 10\"": ["10 inch annuals", "large annuals"],
    "Perennial": ["perennial", "perennials"],
    "Medium Shrub": ["shrub", "shrubs", "medium shrub", "bushes"],
    "Large Shrub": ["large shrub", "large shrubs", "big shrub", "big shrubs"],
    "Small Tree": ["small tree", "small trees", "young tree", "saplings"],
    "Medium Tree": ["medium tree", "medium trees", "mid-size tree"],
    "Large Tree": ["large tree", "large trees", "big tree", "mature tree"],
}


def canonical_synonyms(synonyms: SynonymTable) -> SynonymTable:
    """Run every phrase through the normalizer's unit rules, dropping duplicates."""
    result: SynonymTable = {}
    for service_name, phrases in synonyms.items():
        seen: List[str] = []
        for phrase in phrases:
            canonical = canonicalize_phrase(phrase)
            if canonical and canonical not in seen:
                seen.append(canonical)
        result[service_name] = seen
    return result


def build_default_catalog() -> ServiceCatalog:
    """Catalog with the built-in services and canonicalized synonyms."""
    return ServiceCatalog.from_rows(SERVICE_ROWS, canonical_synonyms(SERVICE_SYNONYMS))


# =============================================================================
# VARIABLE CONFIGURATION
# =============================================================================


# Every default option is zero-valued, so defaults never change a price.
DEFAULT_VARIABLE_TREE: Dict[str, Any] = {
    "siteAccess": {
        "label": "Site Access",
        "accessDifficulty": {
            "label": "Access Difficulty",
            "type": "select",
            "default": "easy",
            "calculationTier": 1,
            "effectType": "labor_time_percentage",
            "options": {
                "easy": {"label": "Easy access", "value": 0},
                "moderate": {"label": "Moderate access", "value": 20},
                "difficult": {"label": "Difficult access", "value": 40},
            },
        },
        "obstacleRemoval": {
            "label": "Obstacle Removal",
            "type": "select",
            "default": "none",
            "calculationTier": 2,
            "effectType": "flat_additional_cost",
            "options": {
                "none": {"label": "None", "value": 0},
                "minor": {"label": "Minor obstacles", "value": 150},
                "major": {"label": "Major obstacles", "value": 500},
            },
        },
    },
    "materials": {
        "label": "Materials",
        "paverStyle": {
            "label": "Material Style",
            "type": "select",
            "default": "standard",
            "calculationTier": 2,
            "effectType": "material_cost_multiplier",
            "options": {
                "standard": {"label": "Standard", "value": 0},
                "premium": {"label": "Premium", "value": 20},
                "luxury": {"label": "Luxury", "value": 40},
            },
        },
        "cuttingComplexity": {
            "label": "Cutting Complexity",
            "type": "select",
            "default": "minimal",
            "calculationTier": "both",
            "effectType": "cutting_complexity",
            "options": {
                "minimal": {"label": "Minimal cutting", "laborPercentage": 0, "materialWaste": 0},
                "moderate": {"label": "Moderate cutting", "laborPercentage": 20, "materialWaste": 10},
                "complex": {"label": "Complex cutting", "laborPercentage": 40, "materialWaste": 20},
            },
        },
    },
    "labor": {
        "label": "Labor",
        "teamSize": {
            "label": "Team Size",
            "type": "select",
            "default": "threePlus",
            "calculationTier": 1,
            "effectType": "labor_time_percentage",
            "options": {
                "threePlus": {"label": "3+ person crew", "value": 0},
                "two": {"label": "2 person crew", "value": 40},
            },
        },
    },
    "equipment": {
        "label": "Equipment",
        "equipmentRequired": {
            "label": "Equipment Required",
            "type": "select",
            "default": "handTools",
            "calculationTier": 2,
            "effectType": "daily_equipment_cost",
            "options": {
                "handTools": {"label": "Hand tools", "value": 0},
                "attachments": {"label": "Attachments", "value": 125},
                "lightMachinery": {"label": "Light machinery", "value": 250},
                "heavyMachinery": {"label": "Heavy machinery", "value": 350},
            },
        },
    },
    "complexity": {
        "label": "Complexity",
        "overallComplexity": {
            "label": "Overall Complexity",
            "type": "select",
            "default": "simple",
            "calculationTier": 2,
            "effectType": "total_project_multiplier",
            "options": {
                "simple": {"label": "Simple", "value": 0},
                "standard": {"label": "Standard", "value": 10},
                "complex": {"label": "Complex", "value": 30},
                "extreme": {"label": "Extreme", "value": 50},
            },
        },
    },
}


def build_default_variable_config() -> VariableConfig:
    return VariableConfig.from_tree(deepcopy(DEFAULT_VARIABLE_TREE))


def build_default_pricing_config(company_id: str = "default") -> CompanyPricingConfig:
    """Company config where every service uses the default rates and variables."""
    return CompanyPricingConfig(
        company_id=company_id,
        default_service=ServicePricingConfig(variables=build_default_variable_config()),
        services={},
        irrigation=IrrigationRateSchedule(),
    )

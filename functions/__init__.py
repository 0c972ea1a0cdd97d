"""LandQuote Pipeline - Cloud Functions.

This package contains the Python Cloud Functions for the LandQuote
landscaping quote pipeline.

Architecture:
- Normalizer: canonical units, spelling and dimensions
- Recognizer: synonym matching with quantity extraction
- Validator: completeness checks, special requirements, optional AI pass
- Pricing Engine: two-tier labor/cost model driven by effect-typed variables
"""

__version__ = "1.0.0"

"""Firestore service for LandQuote.

Reads a company's service catalog and pricing configuration documents.

Layout:
    companies/{companyId}
    companies/{companyId}/serviceCatalog/{docId}
        {name, row, unit, category, isSpecial, synonyms: [...]}
    companies/{companyId}/pricingConfig/default
        {hourlyLaborRate, ..., variables: {...}, selections: {...}, irrigation: {...}}
    companies/{companyId}/pricingConfig/{docId}
        {serviceName, hourlyLaborRate, ..., variables: {...}}
"""

from typing import Any, Dict, List, Optional
import inspect
import structlog

from firebase_admin import firestore

from config.errors import LandQuoteError, ErrorCode

logger = structlog.get_logger()


class FirestoreService:
    """Service for Firestore reads.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_COMPANIES = "companies"
    SUBCOLLECTION_SERVICE_CATALOG = "serviceCatalog"
    SUBCOLLECTION_PRICING_CONFIG = "pricingConfig"
    DEFAULT_PRICING_DOC = "default"

    def __init__(self, db=None):
        """Initialize FirestoreService.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    def _company_collection(self, company_id: str, subcollection: str):
        return (
            self.db
            .collection(self.COLLECTION_COMPANIES)
            .document(company_id)
            .collection(subcollection)
        )

    async def _list_documents(self, company_id: str, subcollection: str) -> List[Dict[str, Any]]:
        try:
            docs = await self._maybe_await(self._company_collection(company_id, subcollection).stream())
            return [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]
        except Exception as e:
            logger.error(
                "firestore_list_failed",
                company_id=company_id,
                subcollection=subcollection,
                error=str(e)
            )
            raise LandQuoteError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list {subcollection}: {str(e)}",
                details={"company_id": company_id, "subcollection": subcollection}
            ) from e

    async def get_company(self, company_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the company document.

        Returns:
            Company data or None if not found.

        Raises:
            LandQuoteError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_COMPANIES).document(company_id)
            doc = await self._maybe_await(doc_ref.get())
            if doc.exists:
                return {"id": doc.id, **doc.to_dict()}
            return None
        except Exception as e:
            logger.error("firestore_get_failed", company_id=company_id, error=str(e))
            raise LandQuoteError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get company: {str(e)}",
                details={"company_id": company_id}
            ) from e

    async def list_service_catalog(self, company_id: str) -> List[Dict[str, Any]]:
        """Catalog rows for a company, ordered by legacy row key."""
        rows = await self._list_documents(company_id, self.SUBCOLLECTION_SERVICE_CATALOG)
        rows.sort(key=lambda row: row.get("row", 0))
        logger.info("service_catalog_loaded", company_id=company_id, service_count=len(rows))
        return rows

    async def list_pricing_config(self, company_id: str) -> List[Dict[str, Any]]:
        """Pricing config documents: the default doc plus per-service overrides."""
        docs = await self._list_documents(company_id, self.SUBCOLLECTION_PRICING_CONFIG)
        logger.info("pricing_config_loaded", company_id=company_id, doc_count=len(docs))
        return docs

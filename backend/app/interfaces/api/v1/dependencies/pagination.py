from fastapi import Query

from app.interfaces.api.v1.schemas.pagination import LedgerListParams, PaginationParams


def _normalize_search(search: str | None) -> str | None:
    normalized = search.strip() if search is not None else None
    return normalized or None


def get_pagination_params(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    search: str | None = Query(default=None),
) -> PaginationParams:
    return PaginationParams(offset=offset, limit=limit, search=_normalize_search(search))


def get_ledger_list_params(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    search: str | None = Query(default=None),
    status: str | None = Query(default=None, description="Row status, or `all`."),
) -> LedgerListParams:
    normalized_status = status.strip().lower() if status is not None else None
    if normalized_status in ("", "all"):
        normalized_status = None
    return LedgerListParams(offset=offset, limit=limit, search=_normalize_search(search), status=normalized_status)

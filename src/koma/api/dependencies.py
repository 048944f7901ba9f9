"""FastAPI dependencies shared by the API routes."""

from typing import Callable

from fastapi import Request

from koma.services.indexer.service import IndexerService
from koma.uow import UnitOfWork


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.mints.count()
    """
    return request.app.state.uow_factory


def get_indexer(request: Request) -> IndexerService | None:
    """Get the running IndexerService, or None when indexing is disabled."""
    return getattr(request.app.state, "indexer", None)

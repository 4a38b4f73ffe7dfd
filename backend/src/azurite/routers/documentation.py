from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from azurite.database import get_session
from azurite.models.user import User
from azurite.routers.deps import Paging, get_current_user, get_paging
from azurite.schemas.common import Envelope, Page, ok
from azurite.schemas.documentation import (
    DocumentationCreate,
    DocumentationOut,
    DocumentationUpdate,
)
from azurite.services import documentation_service, game_service

router = APIRouter(tags=["documentation"])


@router.get("/games/{game_id}/docs", response_model=Envelope[Page[DocumentationOut]])
def list_docs(
    game_id: int,
    paging: Paging = Depends(get_paging),
    session: Session = Depends(get_session),
) -> Envelope:
    game_service.get_game(session, game_id)
    docs, total = documentation_service.list_docs(session, game_id, paging.page, paging.per_page)
    return ok(Page.build(docs, paging.page, paging.per_page, total))


@router.get("/games/{game_id}/docs/search", response_model=Envelope[Page[DocumentationOut]])
def search_docs(
    game_id: int,
    q: str = Query(min_length=1),
    paging: Paging = Depends(get_paging),
    session: Session = Depends(get_session),
) -> Envelope:
    docs, total = documentation_service.search_docs(
        session, game_id, q, paging.page, paging.per_page
    )
    return ok(Page.build(docs, paging.page, paging.per_page, total))


@router.post("/games/{game_id}/docs", response_model=Envelope[DocumentationOut], status_code=201)
def create_doc(
    game_id: int,
    data: DocumentationCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    doc = documentation_service.create_doc(session, game_id, data, user)
    return ok(doc, "Documentation created successfully")


@router.get("/docs/by-slug/{game_slug}/{doc_slug}", response_model=Envelope[DocumentationOut])
def get_doc_by_slug(
    game_slug: str, doc_slug: str, session: Session = Depends(get_session)
) -> Envelope:
    return ok(documentation_service.get_doc_by_slug(session, game_slug, doc_slug))


@router.get("/docs/{doc_id}", response_model=Envelope[DocumentationOut])
def get_doc(doc_id: int, session: Session = Depends(get_session)) -> Envelope:
    return ok(documentation_service.get_doc(session, doc_id))


@router.put("/docs/{doc_id}", response_model=Envelope[DocumentationOut])
def update_doc(
    doc_id: int,
    data: DocumentationUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    doc = documentation_service.update_doc(session, doc_id, data, user)
    return ok(doc, "Documentation updated successfully")


@router.delete("/docs/{doc_id}", response_model=Envelope[None])
def delete_doc(
    doc_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    documentation_service.delete_doc(session, doc_id, user)
    return ok(message="Documentation deleted successfully")

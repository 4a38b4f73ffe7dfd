import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse
from sqlmodel import Session

from azurite.database import get_session
from azurite.errors import NotFoundError
from azurite.models.user import User
from azurite.routers.deps import (
    Paging,
    get_current_user,
    get_optional_user,
    get_paging,
    request_ip,
    require_moderator,
)
from azurite.schemas.common import Envelope, Page, ok
from azurite.schemas.mod import ModCreate, ModFileOut, ModOut, ModSummary, ModUpdate, RejectRequest
from azurite.services import ban_gate, listing, mod_service
from azurite.services.blob_store import BlobStore, get_blob_store
from azurite.services.scan_engine import ScanEngine, get_scan_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mods", tags=["mods"])


def _page(result: listing.ListingPage) -> Page[ModSummary]:
    return Page.build(result.mods, result.page, result.per_page, result.total)


@router.get("/", response_model=Envelope[Page[ModSummary]])
def list_mods(
    game_id: int = 0,
    search: str = "",
    tags: list[str] = Query(default=[]),
    tag_match: listing.TagMatch = "any",
    sort: str = "created",
    order: str = "desc",
    page: int = 1,
    per_page: int = listing.DEFAULT_PER_PAGE,
    session: Session = Depends(get_session),
) -> Envelope:
    result = listing.list_mods(
        session,
        listing.ListingQuery(
            game_id=game_id,
            search=search,
            tags=tags,
            tag_match=tag_match,
            sort=sort,
            order=order,
            page=page,
            per_page=per_page,
        ),
    )
    return ok(_page(result))


@router.get("/search", response_model=Envelope[Page[ModSummary]])
def search_mods(
    q: str = Query(min_length=1),
    game_id: int = 0,
    paging: Paging = Depends(get_paging),
    session: Session = Depends(get_session),
) -> Envelope:
    result = listing.search_mods(session, q, game_id, paging.page, paging.per_page)
    return ok(_page(result))


@router.get("/pending", response_model=Envelope[Page[ModSummary]])
def list_pending_mods(
    paging: Paging = Depends(get_paging),
    _moderator: User = Depends(require_moderator),
    session: Session = Depends(get_session),
) -> Envelope:
    return ok(_page(listing.list_pending_mods(session, paging.page, paging.per_page)))


@router.post("/", response_model=Envelope[ModOut], status_code=201)
def create_mod(
    data: ModCreate,
    request: Request,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    scan_engine: ScanEngine = Depends(get_scan_engine),
) -> Envelope:
    ban_gate.check_request(
        session, ip_address=request_ip(request), user_id=user.id, game_id=data.game_id
    )
    mod = mod_service.create_mod(session, data, user.id, scan_engine)  # type: ignore[arg-type]
    return ok(mod_service.build_mod_out(session, mod, user.id), "Mod created successfully")


@router.get("/by-slug/{game_slug}/{mod_slug}", response_model=Envelope[ModOut])
def get_mod_by_slug(
    game_slug: str,
    mod_slug: str,
    user: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod = mod_service.get_mod_by_slug(session, game_slug, mod_slug)
    return ok(mod_service.build_mod_out(session, mod, user.id if user else None))


@router.get("/{mod_id}", response_model=Envelope[ModOut])
def get_mod(
    mod_id: int,
    user: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod = mod_service.get_mod(session, mod_id)
    return ok(mod_service.build_mod_out(session, mod, user.id if user else None))


@router.put("/{mod_id}", response_model=Envelope[ModOut])
def update_mod(
    mod_id: int,
    data: ModUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod = mod_service.update_mod(session, mod_id, data, user.id)  # type: ignore[arg-type]
    return ok(mod_service.build_mod_out(session, mod, user.id), "Mod updated successfully")


@router.delete("/{mod_id}", response_model=Envelope[None])
def delete_mod(
    mod_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Envelope:
    mod_service.delete_mod(session, mod_id, user.id, blob_store)  # type: ignore[arg-type]
    return ok(message="Mod deleted successfully")


@router.post("/{mod_id}/files", response_model=Envelope[ModFileOut], status_code=201)
def upload_file(
    mod_id: int,
    file: UploadFile = File(...),
    is_main: str = Form("false"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    blob_store: BlobStore = Depends(get_blob_store),
    scan_engine: ScanEngine = Depends(get_scan_engine),
) -> Envelope:
    record = mod_service.upload_file(
        session,
        mod_id,
        user.id,  # type: ignore[arg-type]
        file.filename or "",
        file.file,
        is_main=is_main == "true",
        blob_store=blob_store,
        scan_engine=scan_engine,
    )
    return ok(ModFileOut(**record.model_dump()), "File uploaded successfully")


@router.get("/{mod_id}/download")
def download_mod(mod_id: int, session: Session = Depends(get_session)) -> FileResponse:
    record = mod_service.download_file(session, mod_id)
    path = Path(record.file_path)
    if not path.is_file():
        logger.error("File %d for mod %d missing on disk: %s", record.id, mod_id, path)
        raise NotFoundError("File not found")
    return FileResponse(path, media_type=record.mime_type, filename=record.filename)


@router.post("/{mod_id}/like", response_model=Envelope[None])
def like_mod(
    mod_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod_service.like_mod(session, mod_id, user.id)  # type: ignore[arg-type]
    return ok(message="Mod liked")


@router.delete("/{mod_id}/like", response_model=Envelope[None])
def unlike_mod(
    mod_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod_service.unlike_mod(session, mod_id, user.id)  # type: ignore[arg-type]
    return ok(message="Mod unliked")


@router.post("/{mod_id}/reject", response_model=Envelope[ModOut])
def reject_mod(
    mod_id: int,
    data: RejectRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod = mod_service.reject_mod(session, mod_id, data.reason, user)
    return ok(mod_service.build_mod_out(session, mod, user.id), "Mod rejected")


@router.post("/{mod_id}/approve", response_model=Envelope[ModOut])
def approve_mod(
    mod_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    mod = mod_service.approve_mod(session, mod_id, user)
    return ok(mod_service.build_mod_out(session, mod, user.id), "Mod approved")

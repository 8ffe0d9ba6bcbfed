"""FastAPI routes for fezzes and their discussion threads."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from fezhub.domain.barrels import BarrelError
from fezhub.domain.fez import FezService, schemas
from fezhub.infra.auth import AuthenticatedUser, get_active_user
from fezhub.infra.images import ImageError

router = APIRouter(prefix="/fez", tags=["fez"])

_fez_service = FezService()


def _as_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, BarrelError):
		return HTTPException(status_code=exc.status_code, detail=exc.reason)
	if isinstance(exc, ImageError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/joined", response_model=list[schemas.FezData])
async def joined_endpoint(
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> list[schemas.FezData]:
	try:
		return await _fez_service.joined(auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.get("/open", response_model=list[schemas.FezData])
async def open_endpoint(
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> list[schemas.FezData]:
	try:
		return await _fez_service.open(auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.get("/types", response_model=list[str])
async def types_endpoint(
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> list[str]:
	return FezService.types()


@router.api_route("/owner", methods=["GET", "POST"], response_model=list[schemas.FezData])
async def owner_endpoint(
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> list[schemas.FezData]:
	try:
		return await _fez_service.owned(auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/create", response_model=schemas.FezData, status_code=status.HTTP_201_CREATED)
async def create_endpoint(
	payload: schemas.FezContentData,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.create(auth_user, payload)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/post/{post_id}/delete", response_model=schemas.FezData, response_model_exclude_none=True)
async def delete_post_endpoint(
	post_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.delete_post(post_id, auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.get("/{fez_id}", response_model=schemas.FezData, response_model_exclude_none=True)
async def get_endpoint(
	fez_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.get(fez_id, auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/{fez_id}/join", response_model=schemas.FezData, status_code=status.HTTP_201_CREATED)
async def join_endpoint(
	fez_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.join(fez_id, auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/{fez_id}/unjoin", response_model=schemas.FezData)
async def unjoin_endpoint(
	fez_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.unjoin(fez_id, auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/{fez_id}/cancel", response_model=schemas.FezData)
async def cancel_endpoint(
	fez_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.cancel(fez_id, auth_user)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/{fez_id}/update", response_model=schemas.FezData)
async def update_endpoint(
	fez_id: str,
	payload: schemas.FezContentData,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.update(fez_id, auth_user, payload)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post(
	"/{fez_id}/post",
	response_model=schemas.FezData,
	response_model_exclude_none=True,
	status_code=status.HTTP_201_CREATED,
)
async def post_endpoint(
	fez_id: str,
	payload: schemas.PostCreateData,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.add_post(fez_id, auth_user, payload)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/{fez_id}/user/{user_id}/add", response_model=schemas.FezData)
async def add_user_endpoint(
	fez_id: str,
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.add_member(fez_id, auth_user, user_id)
	except Exception as exc:
		raise _as_http_error(exc) from exc


@router.post("/{fez_id}/user/{user_id}/remove", response_model=schemas.FezData)
async def remove_user_endpoint(
	fez_id: str,
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_active_user),
) -> schemas.FezData:
	try:
		return await _fez_service.remove_member(fez_id, auth_user, user_id)
	except Exception as exc:
		raise _as_http_error(exc) from exc

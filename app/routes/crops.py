"""Crop threshold profile routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.crops import CropCreate, CropListRead, CropRead, CropUpdate
from app.services.crop_service import CropService

router = APIRouter(prefix="/crops", tags=["crops"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, IntegrityError):
		return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="crop name already exists")
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected crop service failure",
	)


@router.get("", response_model=CropListRead)
async def list_crops(db: AsyncSession = Depends(get_db)) -> CropListRead:
	try:
		crops = await CropService(db).list_crops()
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropListRead(items=[CropRead.model_validate(crop) for crop in crops])


@router.get("/{crop_id}", response_model=CropRead)
async def get_crop(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).get_crop(crop_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropRead.model_validate(crop)


@router.post("", response_model=CropRead, status_code=status.HTTP_201_CREATED)
async def create_crop(payload: CropCreate, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).create_crop(payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropRead.model_validate(crop)


@router.put("/{crop_id}", response_model=CropRead)
async def update_crop(crop_id: uuid.UUID, payload: CropUpdate, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).update_crop(crop_id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropRead.model_validate(crop)


@router.post("/{crop_id}/activate", response_model=CropRead)
async def activate_crop(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).activate_crop(crop_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropRead.model_validate(crop)

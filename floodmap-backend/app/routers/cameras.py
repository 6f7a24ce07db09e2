from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.camera import Camera
from app.schemas.camera import CameraCreate
from app.services.stores import CameraStore

router = APIRouter(prefix="/api/cameras", tags=["cameras"])

@router.get("")
async def list_cameras(db: Session = Depends(get_db)):
    return {"cameras": [c.to_dict() for c in CameraStore(db).get_all_cameras()]}

@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_camera(payload: CameraCreate, db: Session = Depends(get_db)):
    store = CameraStore(db)
    if store.get_camera_by_id(payload.id):
        raise HTTPException(status_code=400, detail="Camera id already exists")
    camera = store.create_camera(Camera(
        id=payload.id,
        name=payload.name,
        location=list(payload.location) if payload.location else None,
        stream_url=payload.stream_url,
    ))
    return {"camera": camera.to_dict()}

@router.get("/{camera_id}")
async def get_camera(camera_id: str, db: Session = Depends(get_db)):
    camera = CameraStore(db).get_camera_by_id(camera_id)
    if not camera:
        raise HTTPException(status_code=404, detail="Camera not found")
    return {"camera": camera.to_dict()}

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_dispatcher
from app.models.prediction import Prediction
from app.schemas.messages import PREDICTION
from app.schemas.prediction import PredictionCreate
from app.services.broadcast import BroadcastDispatcher
from app.services.stores import PredictionStore

router = APIRouter(prefix="/api/predictions", tags=["predictions"])

@router.get("")
async def active_predictions(db: Session = Depends(get_db)):
    """Non-expired predictions; expired rows are purged first"""
    store = PredictionStore(db)
    store.delete_expired_predictions()
    return {"predictions": [p.to_dict() for p in store.get_active_predictions()]}

@router.post("", status_code=201)
async def create_prediction(
    payload: PredictionCreate,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    prediction = PredictionStore(db).insert_prediction(Prediction(
        type=payload.type,
        location=list(payload.location),
        probability=payload.probability,
        severity=payload.severity,
        timestamp=payload.timestamp,
        expires_at=payload.expires_at,
    ))
    await dispatcher.broadcast(PREDICTION, prediction.to_dict())
    return {"success": True, "id": prediction.id, "prediction": prediction.to_dict()}

"""Model endpoints: train, list, get, predict, delete."""

import logging
import random
import threading
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, model_validator

from scalargrad.server.config import settings

router = APIRouter()
logger = logging.getLogger(__name__)

# One training run at a time
_train_lock = threading.Lock()

NAME_PATTERN = r"^[A-Za-z0-9_.-]{1,100}$"


# --- Request/Response models ---

class SampleIn(BaseModel):
    features: list[float] = Field(..., min_length=1, max_length=1000)
    target: float = Field(..., ge=0.0, description="Class index (0/1 for binary models)")


class TrainRequest(BaseModel):
    name: str = Field(..., pattern=NAME_PATTERN, description="Registry name for the trained model")
    kind: Literal["binary", "multiclass"] = Field("binary", description="Classifier type")
    hidden_sizes: list[int] = Field(default_factory=lambda: [8, 8], max_length=8)
    num_classes: Optional[int] = Field(None, ge=2, le=100, description="Defaults to max(target) + 1")
    samples: list[SampleIn] = Field(..., min_length=1)
    learning_rate: Optional[float] = Field(None, gt=0.0)
    epochs: Optional[int] = Field(None, ge=1, le=100_000)
    batch_size: Optional[int] = Field(None, ge=1)
    seed: Optional[int] = None
    split: bool = Field(True, description="Hold out validation/test partitions")

    @model_validator(mode="after")
    def _check_shapes(self):
        if any(h < 1 or h > 1024 for h in self.hidden_sizes):
            raise ValueError("hidden layer sizes must be between 1 and 1024")
        width = len(self.samples[0].features)
        if any(len(s.features) != width for s in self.samples):
            raise ValueError("all samples must have the same number of features")
        return self


class PredictRequest(BaseModel):
    features: list[float] = Field(..., min_length=1, max_length=1000)


class PredictResponse(BaseModel):
    predicted_class: int
    probabilities: list[float]


# --- Endpoints ---
# Routes use `def` (not `async def`) because training and inference are
# synchronous CPU work. FastAPI runs `def` routes in a threadpool.

@router.post("/train")
def train(req: TrainRequest):
    """Train a classifier on the posted samples and store it under req.name."""
    import scalargrad
    from scalargrad.core import registry
    from scalargrad.core.losses import LOSSES
    from scalargrad.core.nn import build_classifier
    from scalargrad.core.trainer import Trainer

    if len(req.samples) > settings.max_samples:
        raise HTTPException(
            status_code=413,
            detail=f"at most {settings.max_samples} samples per request",
        )

    config = scalargrad.get_config()
    seed = req.seed if req.seed is not None else config.seed
    rng = random.Random(seed)

    samples = [(s.features, s.target) for s in req.samples]
    n_classes = req.num_classes or int(max(s.target for s in req.samples)) + 1
    loss_name = "binary_cross_entropy" if req.kind == "binary" else "categorical_cross_entropy"

    try:
        model = build_classifier(
            req.kind, len(samples[0][0]), req.hidden_sizes, n_classes=max(n_classes, 2), rng=rng
        )
        trainer = Trainer(
            model,
            LOSSES[loss_name],
            learning_rate=req.learning_rate or config.learning_rate,
            epochs=req.epochs or config.epochs,
            batch_size=req.batch_size or config.batch_size,
            log_every=config.log_every,
            rng=rng,
        )
        with _train_lock:
            report = trainer.train(samples, split=req.split)
    except (ValueError, IndexError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    version = registry.save_model(req.name, model, report)
    return {
        "name": req.name,
        "version": version,
        "total_parameters": model.num_parameters(),
        "report": report.to_dict(),
    }


@router.get("")
def list_models():
    """List stored models with their metadata."""
    from scalargrad.core.registry import list_models as _list

    results = _list()
    return {"models": results, "count": len(results)}


@router.get("/{name}")
def get_model(name: str):
    """Metadata and last training report for a stored model."""
    from scalargrad.core.registry import get_model_info

    info = get_model_info(name)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Model {name} not found")
    return info


@router.post("/{name}/predict", response_model=PredictResponse)
def predict(name: str, req: PredictRequest):
    """Run a forward pass of a stored model on one feature vector."""
    from scalargrad.core.nn import predicted_class
    from scalargrad.core.registry import get_model_info, load_model
    from scalargrad.core.serialization import ModelLoadError

    if get_model_info(name) is None:
        raise HTTPException(status_code=404, detail=f"Model {name} not found")

    try:
        model = load_model(name)
    except ModelLoadError as e:
        logger.error(f"Failed to load model {name}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    try:
        probabilities = model.predict_proba(req.features)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PredictResponse(
        predicted_class=predicted_class(probabilities),
        probabilities=probabilities,
    )


@router.delete("/{name}")
def delete(name: str):
    """Remove a stored model."""
    from scalargrad.core.registry import delete_model

    if not delete_model(name):
        raise HTTPException(status_code=404, detail=f"Model {name} not found")
    return {"deleted": True, "name": name}

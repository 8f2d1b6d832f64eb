import logging
import os
from typing import List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from allocation import (
    BASELINE_STAFF_PCT,
    HELPER_CAP_RATIO,
    Helper,
    Results,
    StaffMember,
    compute_results,
)

logger = logging.getLogger(__name__)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

app = FastAPI(title="Tip Pot API")

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request models; ids are optional for callers and generated when missing
class StaffInput(BaseModel):
    id: Optional[str] = None
    name: str = ""
    share: float = 0.0


class HelperInput(BaseModel):
    id: Optional[str] = None
    name: str = ""
    hours: float = 0.0


class CalculationRequest(BaseModel):
    total: float
    staff: List[StaffInput] = []
    helpers: List[HelperInput] = []


def _ensure_unique(ids: List[str], group: str):
    seen = set()
    for i in ids:
        if i in seen:
            raise HTTPException(status_code=400, detail=f"Duplicate {group} id: {i}")
        seen.add(i)


@app.get("/")
def read_root():
    return {"message": "Tip Pot API"}


@app.get("/defaults")
def get_defaults():
    """
    Engine constants the frontend shows next to the form
    """
    return {
        "baseline_staff_pct": BASELINE_STAFF_PCT,
        "baseline_helper_pct": round(1 - BASELINE_STAFF_PCT, 10),
        "helper_cap_ratio": HELPER_CAP_RATIO,
    }


@app.post("/calculate", response_model=Results)
def calculate_tips(request: CalculationRequest):
    """
    Split the tip pot between staff (by share) and helpers (by hours)
    """
    staff = [StaffMember(id=s.id or uuid4().hex, name=s.name, share=s.share) for s in request.staff]
    helpers = [Helper(id=h.id or uuid4().hex, name=h.name, hours=h.hours) for h in request.helpers]
    _ensure_unique([s.id for s in staff], "staff")
    _ensure_unique([h.id for h in helpers], "helper")

    results = compute_results(request.total, staff, helpers)
    logger.info(
        "calculated total=%.2f staff=%d helpers=%d split=%.4f/%.4f adjusted=%s",
        request.total, len(staff), len(helpers),
        results.applied_staff_pct, results.applied_helper_pct, results.rationale.adjusted,
    )
    return results


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=LOG_LEVEL)
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))

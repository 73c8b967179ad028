from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile
from pydantic import BaseModel, ConfigDict, ValidationError

from persistence import AsyncStateManager
from scoring import (
    format_percentage,
    level_distribution,
    rank_employee_performance,
    score_color,
    score_level,
    score_metrics,
    score_percentage,
)
from scoring.aggregation import division_actuals, filter_records
from scoring.importer import ImportFormatError, build_template, import_kpi_file
from scoring.models import DivisionTarget, Employee, EmployeeKPIData

router = APIRouter(tags=["state"])
logger = logging.getLogger(__name__)

# Store keys used by the dashboard pages.
EMPLOYEES_KEY = "employees"
EMPLOYEE_KPI_KEY = "employeeKPIData"
DIVISION_TARGETS_KEY = "divisionTargets"
MANUAL_ENTRIES_KEY = "manualDataEntries"
IMPORT_BATCHES_KEY = "importBatches"

_MISSING = object()


def _is_list(value: Any) -> bool:
    return isinstance(value, list)


def get_store(request: Request) -> AsyncStateManager:
    return request.app.state.store


async def _load_models(store: AsyncStateManager, key: str, model: type[BaseModel]) -> list[Any]:
    raw = await store.load(key, [], _is_list)
    out = []
    for i, item in enumerate(raw):
        try:
            out.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("STATE LOAD: skipping invalid %s #%d under %r: %s", model.__name__, i, key, e)
    return out


# -------------------------------------------------------------------
# Raw state
# -------------------------------------------------------------------
@router.get("/state")
async def list_keys(prefix: str = "", store: AsyncStateManager = Depends(get_store)):
    return {"keys": sorted(await store.keys_with_prefix(prefix))}


@router.delete("/state")
async def clear_prefix(
    prefix: str = Query(..., min_length=1),
    store: AsyncStateManager = Depends(get_store),
):
    keys = await store.keys_with_prefix(prefix)
    cleared = await store.clear_all_with_prefix(prefix)
    return {"cleared": cleared, "keys": sorted(keys)}


@router.get("/state/{key}")
async def get_state(key: str, store: AsyncStateManager = Depends(get_store)):
    value = await store.load(key, _MISSING)
    if value is _MISSING:
        raise HTTPException(status_code=404, detail=f"no state stored under {key!r}")
    return {"key": key, "value": value}


@router.put("/state/{key}")
async def put_state(key: str, body: dict[str, Any], store: AsyncStateManager = Depends(get_store)):
    if "value" not in body:
        raise HTTPException(status_code=400, detail="value is required")
    if not await store.save(key, body["value"]):
        raise HTTPException(status_code=500, detail=f"failed to save {key!r}")
    return {"key": key, "saved": True}


@router.delete("/state/{key}")
async def delete_state(key: str, store: AsyncStateManager = Depends(get_store)):
    return {"key": key, "cleared": await store.clear(key)}


# -------------------------------------------------------------------
# Configuration bundles
# -------------------------------------------------------------------
@router.get("/config/export")
async def export_configuration(
    keys: list[str] | None = Query(default=None),
    store: AsyncStateManager = Depends(get_store),
) -> Response:
    text = await store.export_configuration(keys)
    return Response(content=text, media_type="application/json")


@router.post("/config/import")
async def import_configuration(request: Request, store: AsyncStateManager = Depends(get_store)):
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="body must be UTF-8 JSON")
    if not await store.import_configuration(text):
        raise HTTPException(status_code=400, detail="configuration import failed")
    return {"imported": True}


# -------------------------------------------------------------------
# Scoring
# -------------------------------------------------------------------
class ScoreRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    actual: float
    target: float


@router.post("/scores")
async def score(body: ScoreRequest):
    percentage = score_percentage(body.actual, body.target)
    level = score_level(body.actual, body.target)
    return {
        "percentage": percentage,
        "level": level,
        "color": score_color(level),
        "display": format_percentage(percentage),
    }


@router.get("/divisions/{division_id}/overview")
async def division_overview(
    division_id: str,
    month: str = Query(..., pattern=r"^\d{1,2}$"),
    year: int = Query(...),
    store: AsyncStateManager = Depends(get_store),
):
    kpis: list[EmployeeKPIData] = await _load_models(store, EMPLOYEE_KPI_KEY, EmployeeKPIData)
    targets: list[DivisionTarget] = await _load_models(store, DIVISION_TARGETS_KEY, DivisionTarget)
    employees: list[Employee] = await _load_models(store, EMPLOYEES_KEY, Employee)

    period = filter_records(kpis, month=month, year=year, division_id=division_id)
    target = next(iter(filter_records(targets, month=month, year=year, division_id=division_id)), None)
    if target is None:
        raise HTTPException(status_code=404, detail=f"no targets for {division_id!r} in {month}/{year}")

    members = [e for e in employees if e.divisionId == division_id and e.isActive]
    ranked = rank_employee_performance(members, period, month=month, year=year)
    return {
        "divisionId": division_id,
        "month": f"{int(month):02d}",
        "year": year,
        "metrics": [asdict(m) for m in score_metrics(division_actuals(period), target)],
        "employees": [
            {"employeeId": p.employee_id, "score": p.score, "level": p.level} for p in ranked
        ],
        "distribution": level_distribution(p.level for p in ranked),
    }


# -------------------------------------------------------------------
# Bulk KPI import
# -------------------------------------------------------------------
_TEMPLATE_MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@router.get("/imports/kpi/template")
async def import_template(fmt: str = Query("csv", alias="format", pattern="^(csv|xlsx)$")) -> Response:
    return Response(
        content=build_template(fmt),
        media_type=_TEMPLATE_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="employee-data-template.{fmt}"'},
    )


@router.post("/imports/kpi")
async def import_kpi(
    file: UploadFile = File(...),
    month: str = Form(...),
    year: int = Form(...),
    uploaded_by: str | None = Form(None),
    store: AsyncStateManager = Depends(get_store),
):
    employees = await _load_models(store, EMPLOYEES_KEY, Employee)
    content = await file.read()
    try:
        batch = import_kpi_file(
            content,
            file.filename or "upload.csv",
            employees=employees,
            month=month,
            year=year,
            uploaded_by=uploaded_by,
        )
    except ImportFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"invalid import parameters: {e}")

    entries = await store.load(MANUAL_ENTRIES_KEY, [], _is_list)
    batches = await store.load(IMPORT_BATCHES_KEY, [], _is_list)
    saved = await store.save_batch(
        [
            {"key": MANUAL_ENTRIES_KEY, "value": [*entries, *(e.to_disk_doc() for e in batch.entries)]},
            {"key": IMPORT_BATCHES_KEY, "value": [*batches, batch.summary_doc()]},
        ]
    )
    if not saved:
        raise HTTPException(status_code=500, detail="imported rows could not be saved")
    return batch.model_dump(mode="json")

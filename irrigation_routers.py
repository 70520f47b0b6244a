# irrigation_routers.py – document endpoints shared by the dashboard and the firmware
from datetime import datetime, timedelta, timezone
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session
import schemas as s
import models
from controls import reconcile_band
from database import get_db

logger = logging.getLogger("irrigation_api")

router = APIRouter(prefix="/api", tags=["irrigation"])

CONFIG_ID = 1


def load_config(db: Session) -> models.AutoModeConfig:
    """Return the single config document, creating it with defaults on first use."""
    cfg = db.get(models.AutoModeConfig, CONFIG_ID)
    if cfg is None:
        cfg = models.AutoModeConfig(id=CONFIG_ID, auto_mode_enabled=False,
                                    min_humidity=35, max_humidity=60)
        db.add(cfg)
        db.commit()
        db.refresh(cfg)
    return cfg

def set_valve_status(db: Session, valve_id: str, is_on: bool) -> models.ValveStatus:
    row = db.get(models.ValveStatus, valve_id)
    if row is None:
        row = models.ValveStatus(valve_id=valve_id, is_on=is_on)
        db.add(row)
    else:
        row.is_on = is_on
        row.updated_at = models.utcnow()
    return row

# ── readings ───────────────────────────────────────────────
@router.get("/readings/latest", response_model=s.SensorReadingOut)
def latest_reading(db: Session = Depends(get_db)):
    row = (
        db.query(models.SensorReading)
          .order_by(models.SensorReading.ts.desc(), models.SensorReading.id.desc())
          .first()
    )
    if row is None:
        raise HTTPException(status_code=404, detail="No readings yet")
    return row

@router.get("/readings/history", response_model=list[s.SensorReadingOut])
def reading_history(
    hours: int = Query(168, ge=1, le=720),     # default 7 d, max 30 d
    db: Session = Depends(get_db),
):
    """
    Soil moisture / temperature timeline for the past *hours*.
    """
    cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)

    return (
        db.query(models.SensorReading)
          .filter(models.SensorReading.ts >= cutoff)
          .order_by(models.SensorReading.ts)
          .all()
    )

# ── valves ─────────────────────────────────────────────────
@router.get("/valves/{valve_id}/status", response_model=s.ValveStatusOut)
def valve_status(valve_id: str, db: Session = Depends(get_db)):
    row = db.get(models.ValveStatus, valve_id)
    if row is None:
        # never written → off
        return s.ValveStatusOut(valve_id=valve_id, is_on=False)
    return row

@router.put("/valves/{valve_id}/status", response_model=s.ValveStatusOut)
def report_valve_status(
    valve_id: str,
    payload: s.ValveStatusIn,
    db: Session = Depends(get_db),
):
    """
    Firmware reports the state it actually applied.
    """
    row = set_valve_status(db, valve_id, payload.is_on)
    db.commit()
    db.refresh(row)
    return row

@router.post("/valves/{valve_id}/toggle", response_model=s.ValveStatusOut)
def toggle_valve(valve_id: str, db: Session = Depends(get_db)):
    """
    Manual on/off. Refused while automatic mode owns the valve.
    """
    if load_config(db).auto_mode_enabled:
        raise HTTPException(status_code=409, detail="Manual control is disabled in automatic mode")

    current = db.get(models.ValveStatus, valve_id)
    desired = not (current.is_on if current else False)

    row = set_valve_status(db, valve_id, desired)

    cmd = db.get(models.ValveCommand, valve_id)
    if cmd is None:
        db.add(models.ValveCommand(valve_id=valve_id, desired=desired))
    else:
        cmd.desired = desired
        cmd.updated_at = models.utcnow()

    db.commit()
    db.refresh(row)
    logger.info("Valve %s switched %s manually", valve_id, "on" if desired else "off")
    return row

@router.get("/valves/{valve_id}/command", response_model=s.ValveCommandOut)
def valve_command(valve_id: str, db: Session = Depends(get_db)):
    cmd = db.get(models.ValveCommand, valve_id)
    if cmd is None:
        raise HTTPException(status_code=404, detail="No command for this valve")
    return cmd

# ── automatic mode ─────────────────────────────────────────
@router.get("/config", response_model=s.AutoModeConfigOut)
def get_config(db: Session = Depends(get_db)):
    cfg = load_config(db)
    # stored rows written before clamping existed may violate min < max
    lo, hi = reconcile_band(cfg.min_humidity, cfg.max_humidity,
                            cfg.min_humidity, cfg.max_humidity)
    return s.AutoModeConfigOut(
        auto_mode_enabled=cfg.auto_mode_enabled,
        min_humidity=lo,
        max_humidity=hi,
        updated_at=cfg.updated_at,
    )

@router.patch("/config", response_model=s.AutoModeConfigOut)
def update_config(payload: s.AutoModeConfigPatch, db: Session = Depends(get_db)):
    """
    Merge-update the automatic-mode document; the humidity band is clamped
    so that min stays below max.
    """
    cfg = load_config(db)

    if payload.auto_mode_enabled is not None:
        cfg.auto_mode_enabled = payload.auto_mode_enabled

    cfg.min_humidity, cfg.max_humidity = reconcile_band(
        payload.min_humidity, payload.max_humidity,
        cfg.min_humidity, cfg.max_humidity,
    )
    cfg.updated_at = models.utcnow()

    db.commit()
    db.refresh(cfg)
    logger.info(
        "Auto config saved: enabled=%s band=%s‑%s",
        cfg.auto_mode_enabled, cfg.min_humidity, cfg.max_humidity,
    )
    return cfg

# ── schedules ──────────────────────────────────────────────
@router.get("/schedules", response_model=list[s.ScheduleOut])
def list_schedules(db: Session = Depends(get_db)):
    return (
        db.query(models.ScheduleEntry)
          .order_by(models.ScheduleEntry.time, models.ScheduleEntry.created_at,
                    models.ScheduleEntry.id)
          .all()
    )

@router.post("/schedules", response_model=s.ScheduleOut, status_code=201)
def create_schedule(payload: s.ScheduleIn, db: Session = Depends(get_db)):
    row = models.ScheduleEntry(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Schedule %s added: %s for %s min on %s", row.id, row.time, row.minutes, row.valve_id)
    return row

@router.delete("/schedules/{schedule_id}", status_code=204)
def delete_schedule(schedule_id: int, db: Session = Depends(get_db)):
    row = db.get(models.ScheduleEntry, schedule_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    db.delete(row)
    db.commit()
    logger.info("Schedule %s removed", schedule_id)
    return Response(status_code=204)

"""
Stand-in for the garden controller firmware.

Every cycle it posts a random-walk soil/temperature reading and applies the
last manual command by reporting it back as the valve status.
"""
import argparse
import logging
import os
import random
import time

import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("device_simulator")

REQUEST_TIMEOUT = 10.0


def step(soil: float, temperature: float, watering: bool) -> tuple[float, float]:
    """Advance the simulated garden by one cycle."""
    soil += random.uniform(0.5, 2.0) if watering else random.uniform(-0.6, 0.2)
    temperature += random.uniform(-0.1, 0.1)

    # Constrain values to realistic ranges
    soil = max(0.0, min(soil, 100.0))
    temperature = max(5.0, min(temperature, 40.0))
    return soil, temperature


def run_cycle(client: httpx.Client, valve_id: str, soil: float, temperature: float, watering: bool) -> bool:
    """
    Push one reading and mirror the desired valve state.
    Returns whether the valve is (now) on.
    """
    r = client.post("/readings", json={
        "soil_moisture": round(soil / 100, 3),      # sensor reports a 0‑1 fraction
        "temperature": round(temperature, 1),
    })
    r.raise_for_status()

    r = client.get(f"/api/valves/{valve_id}/command")
    if r.status_code == 404:
        return watering                      # nobody has commanded this valve yet
    r.raise_for_status()
    desired = bool(r.json()["desired"])

    if desired != watering:
        client.put(f"/api/valves/{valve_id}/status", json={"is_on": desired}).raise_for_status()
        logger.info("Valve %s applied: %s", valve_id, "on" if desired else "off")
    return desired


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Simulate the irrigation controller")
    parser.add_argument("--api", default=os.getenv("IRRIGATION_API_BASE", "http://localhost:8000"))
    parser.add_argument("--valve", default=os.getenv("DEFAULT_VALVE_ID", "valve1"))
    parser.add_argument("--interval", type=float, default=5.0, help="seconds between readings")
    parser.add_argument("--count", type=int, default=0, help="stop after N cycles (0 = forever)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    soil = random.uniform(35, 50)
    temperature = random.uniform(20, 26)
    watering = False
    cycles = 0

    logger.info("Sending one reading every %s s to %s", args.interval, args.api)
    with httpx.Client(base_url=args.api, timeout=REQUEST_TIMEOUT) as client:
        while not args.count or cycles < args.count:
            soil, temperature = step(soil, temperature, watering)
            try:
                watering = run_cycle(client, args.valve, soil, temperature, watering)
            except httpx.HTTPError as exc:
                logger.error("Cycle failed: %s", exc)
            cycles += 1
            if not args.count or cycles < args.count:
                time.sleep(args.interval)


if __name__ == "__main__":
    main()

# main.py
# Entry point: simulates a location loop feeding fixes into a NavigationSession.
# In production, replace the simulated fixes with your real location source.
#
# Directions come from a local .osm extract (--osm) or, without one, from the
# Google Directions API using GOOGLE_MAPS_API_KEY from the environment / .env.

import argparse
import asyncio
import logging
import time
from typing import List

from .directions import DirectionsGateway, GoogleDirectionsGateway
from .models import Coordinate, LocationFix, NamedPoint, RouteStatus, TravelMode
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .osm_directions import OsmDirectionsGateway
from .session import NavigationSession

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Simulation waypoints (Sıhhiye → Kurtuluş, Ankara)
# ------------------------------------------------------------------
WAYPOINTS = [
    NamedPoint(Coordinate(39.92409, 32.845382), "Sıhhiye"),
    NamedPoint(Coordinate(39.9254588, 32.8477125), "Kolej"),
    NamedPoint(Coordinate(39.9210086, 32.8529793), "Kurtuluş Park"),
]


def build_gateway(args: argparse.Namespace, config: NavConfig) -> DirectionsGateway:
    if args.osm:
        return OsmDirectionsGateway.from_file(args.osm, config)
    return GoogleDirectionsGateway(api_key=config.google_maps_api_key)


def simulated_fixes(session: NavigationSession, start: float) -> List[LocationFix]:
    """Walk every leg's polyline vertex by vertex, one fix per second."""
    fixes: List[LocationFix] = []
    t = start
    for leg in session.route.legs:
        for point in leg.path:
            fixes.append(LocationFix(point.lat, point.lng, timestamp=t, accuracy=8.0))
            t += 1.0
    return fixes


async def run_simulation(args: argparse.Namespace) -> None:
    config = NavConfig.from_env()
    config.log_dir = args.log_dir

    # 1. Boot session
    session = NavigationSession(build_gateway(args, config), config, NavLogger(config))
    session.add_event_listener(lambda event: print(f"  [event] {event.type}"))

    # 2. Request a route
    route = await session.plan(WAYPOINTS, TravelMode(args.mode), trip_id="demo-trip")
    if not session.start():
        print(f"[Main] Could not start navigation ({len(route.legs)} legs).")
        return
    print(f"[Main] Route {route.id}: {route.total_distance}, {route.total_duration}")

    print("\n--- Location Loop Active ---")

    # 3. Location loop, replace with real sensor feed in production
    for fix in simulated_fixes(session, time.time()):
        update = session.update(fix)
        if update is None:
            break

        verdict = "OFF ROUTE" if update.deviation.is_off_route else "on route"
        print(f"  {fix.lat:.6f},{fix.lng:.6f} → {update.progress.distance_to_destination:.0f} m left, {verdict}")

        if update.deviation.suggest_recalculation:
            print("  ⚠  Deviation persists — recalculating.")
            await session.recalculate(fix.coordinate)

        if session.route.status is RouteStatus.COMPLETED:
            print("  ✓  Final destination reached.")
            break

    session.end()
    print("\n--- Session complete ---")
    print(f"    Log files written to: {config.log_dir}/")


def run() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="tripnav — navigation session simulator")
    parser.add_argument("--osm", default=None,
                        help="Local .osm extract for offline routing")
    parser.add_argument("--mode", default="walking",
                        choices=[m.value for m in TravelMode],
                        help="Travel mode (default: walking)")
    parser.add_argument("--log-dir", default="logs",
                        help="Directory for route and session logs (default: logs)")

    asyncio.run(run_simulation(parser.parse_args()))


if __name__ == "__main__":
    run()

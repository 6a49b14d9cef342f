"""
UI Utilities for the RescueNet command center.
Contains the status timeline for a single route.
"""

import streamlit as st
from streamlit_timeline import timeline
from datetime import datetime
from typing import Dict

from .models import RouteAssignment


def _timeline_date(at: datetime) -> Dict[str, str]:
    return {
        "year": str(at.year), "month": str(at.month), "day": str(at.day),
        "hour": str(at.hour), "minute": str(at.minute), "second": str(at.second),
    }


def build_route_timeline(route: RouteAssignment) -> Dict:
    """
    TimelineJS payload for a route: dispatch followed by every status change.

    Routes without a creation time start at their first status change.
    """
    events = []

    if route.created_at is not None:
        events.append({
            "start_date": _timeline_date(route.created_at),
            "text": {
                "headline": "Ambulance Dispatched",
                "text": f"{route.ambulance_plate or route.ambulance_id or route.id} "
                        f"→ {route.patient_location or 'patient'}",
            },
            "group": "Dispatch",
        })

    for change in route.history:
        text = f"{change.from_status.display_name} → {change.to_status.display_name} by {change.actor.name}"
        if change.notes:
            text += f"<br>{change.notes}"
        events.append({
            "start_date": _timeline_date(change.at),
            "text": {"headline": change.to_status.display_name, "text": text},
            "group": "Status",
        })

    return {"events": events}


def render_route_timeline(route: RouteAssignment, height: int = 300):
    """Render a route's history, or a caption when there is nothing to show."""
    data = build_route_timeline(route)
    if not data["events"]:
        st.caption("No history recorded for this route yet.")
        return
    timeline(data, height=height)

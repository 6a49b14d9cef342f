import folium
from streamlit_folium import st_folium
from typing import Optional, Sequence

from .clustering import Cluster, MapMarker
from .fleet_view import FleetView
from .geo import format_distance, format_eta
from .models import Position, RouteAssignment, RouteStatus
from .polyline import decode
from .staleness import format_last_update


DEFAULT_CENTER = Position(24.7136, 46.6753)
STALE_COLOR = "red"
CLUSTER_COLOR = "purple"

ROUTE_COLORS = {
    RouteStatus.ACTIVE: "#2196f3",
    RouteStatus.CLEARED: "#4caf50",
    RouteStatus.TIMEOUT: "#ff9800",
    RouteStatus.COMPLETED: "#9e9e9e",
}


def _add_marker(m: folium.Map, marker: MapMarker, view: FleetView):
    entity = view.entities.get(marker.entity_id)
    label = entity.label if entity else marker.entity_id
    stale = marker.entity_id in view.stale
    status_text = "STALE" if stale else marker.status.display_name
    last_seen = format_last_update(entity, view.generated_at) if entity else ""

    folium.Marker(
        marker.position.to_tuple(),
        popup=f"<b>{label}</b><br>Status: {status_text}<br>{last_seen}",
        tooltip=f"{label} ({status_text})",
        icon=folium.Icon(
            color=STALE_COLOR if stale else marker.status.color,
            icon="ambulance",
            prefix="fa",
            angle=int(marker.heading),
        ),
    ).add_to(m)


def _add_cluster(m: folium.Map, cluster: Cluster, view: FleetView):
    labels = [
        view.entities[i].label if i in view.entities else i
        for i in cluster.member_ids
    ]
    folium.Marker(
        cluster.center.to_tuple(),
        popup=f"<b>Ambulance Cluster</b><br>{'<br>'.join(labels)}",
        tooltip=f"{cluster.size} ambulances",
        icon=folium.DivIcon(
            html=(
                f'<div style="background:{CLUSTER_COLOR};color:white;border-radius:50%;'
                f'width:30px;height:30px;line-height:30px;text-align:center;'
                f'font-weight:bold;">{cluster.size}</div>'
            )
        ),
    ).add_to(m)


def add_route(m: folium.Map, route: RouteAssignment):
    """
    Draw a route on the map.

    Uses the route's encoded polyline when present, otherwise a straight line
    between origin and destination.
    """
    if route.encoded_polyline:
        path = [p.to_tuple() for p in decode(route.encoded_polyline)]
    else:
        path = [route.origin.to_tuple(), route.destination.to_tuple()]

    folium.PolyLine(
        locations=path,
        color=ROUTE_COLORS[route.status],
        weight=4,
        opacity=0.85,
        dash_array=None if route.status is RouteStatus.ACTIVE else "8",
        tooltip=f"{route.ambulance_plate or route.id} - {route.status.display_name}",
    ).add_to(m)

    folium.Marker(
        route.destination.to_tuple(),
        popup=f"<b>PATIENT</b><br>{route.patient_location or 'Unknown location'}",
        tooltip=f"{route.priority.display_name} priority",
        icon=folium.Icon(color="red", icon="user", prefix="fa"),
    ).add_to(m)


def build_fleet_map(
    view: FleetView,
    zoom: int = 12,
    target: Optional[Position] = None,
    routes: Sequence[RouteAssignment] = (),
) -> folium.Map:
    """
    Build a Folium map for one fleet view.

    Args:
        view: Result of compute_fleet_view()
        zoom: Initial zoom level
        target: Patient location to highlight, with a line to the nearest ambulance
        routes: Routes to draw
    """
    if view.bounds:
        (south, west), (north, east) = view.bounds
        center = Position((south + north) / 2, (west + east) / 2)
    else:
        center = target or DEFAULT_CENTER

    m = folium.Map(location=center.to_tuple(), zoom_start=zoom, tiles="CartoDB positron")

    for item in view.items:
        if isinstance(item, Cluster):
            _add_cluster(m, item, view)
        else:
            _add_marker(m, item, view)

    for route in routes:
        add_route(m, route)

    if target is not None:
        folium.Marker(
            target.to_tuple(),
            popup="<b>PATIENT</b>",
            tooltip="Patient Location",
            icon=folium.Icon(color="red", icon="user", prefix="fa"),
        ).add_to(m)

        if view.nearest is not None and view.nearest.found and view.eta is not None:
            folium.PolyLine(
                locations=[view.nearest.entity.position.to_tuple(), target.to_tuple()],
                color="#f59e0b",
                weight=3,
                opacity=0.85,
                dash_array="6",
                tooltip=(
                    f"{view.nearest.entity.label}: {format_distance(view.eta.distance_km)}, "
                    f"{format_eta(view.eta.eta_minutes)}"
                ),
            ).add_to(m)

    if view.bounds:
        m.fit_bounds([list(view.bounds[0]), list(view.bounds[1])])

    return m


def render_fleet_map(m: folium.Map, height: int = 500, key: str = "fleet_map"):
    """
    Show a map built with build_fleet_map() in the Streamlit page.

    Clustering follows the zoom chosen in the app, so no map state is sent
    back; panning and zooming do not trigger a rerun.
    """
    st_folium(m, width="100%", height=height, key=key, returned_objects=[])

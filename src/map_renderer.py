import html
import json
import math

METERS_PER_DEGREE = 111_320


def meters_to_lat(meters: float) -> float:
    return meters / METERS_PER_DEGREE


def meters_to_lng(meters: float, lat: float) -> float:
    return meters / (METERS_PER_DEGREE * math.cos(math.radians(lat)))


def _coord_key(prop: dict) -> tuple:
    return (prop.get("latitude"), prop.get("longitude"))


def group_by_coord(properties: list[dict]) -> list[list[dict]]:
    """Group listings sharing an identical (latitude, longitude) pair."""
    groups: dict[tuple, list[dict]] = {}
    for prop in properties:
        groups.setdefault(_coord_key(prop), []).append(prop)
    return list(groups.values())


def _position(prop: dict, center: tuple[float, float]) -> tuple[float, float]:
    lat, lng = _coord_key(prop)
    if lat is None or lng is None:
        return center
    return float(lat), float(lng)


def fan_out_group(
    group: list[dict], radius_m: float, center: tuple[float, float]
) -> list[dict]:
    """Spread coincident listings on a circle so each marker stays clickable.

    Listings without coordinates are placed around the default center.
    """
    if len(group) == 1:
        lat, lng = _position(group[0], center)
        return [{**group[0], "latitude": lat, "longitude": lng}]

    lat, lng = _position(group[0], center)
    spread = []
    for i, prop in enumerate(group):
        angle = 2 * math.pi * i / len(group)
        spread.append(
            {
                **prop,
                "latitude": lat + meters_to_lat(radius_m * math.cos(angle)),
                "longitude": lng + meters_to_lng(radius_m * math.sin(angle), lat),
            }
        )
    return spread


def layout_markers(
    properties: list[dict], radius_m: float, center: tuple[float, float]
) -> list[dict]:
    markers = []
    for group in group_by_coord(properties):
        markers.extend(fan_out_group(group, radius_m, center))
    return markers


def _popup(prop: dict) -> str:
    parts = [f"<b>{html.escape(str(prop.get('title', '')))}</b>"]
    parts.append(html.escape(str(prop.get("price", ""))))
    image = prop.get("image")
    if image and str(image).startswith("http"):
        parts.append(
            f'<img src="{html.escape(str(image), quote=True)}" alt="" '
            'style="max-width:200px;display:block;margin-top:4px">'
        )
    link = prop.get("link")
    if link and str(link).startswith("http"):
        parts.append(
            f'<a href="{html.escape(str(link), quote=True)}" target="_blank" '
            'rel="noopener">Open listing</a>'
        )
    return "<br>".join(parts)


def render_map_html(
    properties: list[dict],
    center: tuple[float, float] = (45.0, 15.0),
    zoom: int = 6,
    radius_m: float = 100,
    cluster_radius_px: int = 50,
) -> str:
    """Render a self-contained Leaflet page with one marker per listing."""
    markers = [
        {
            "id": m.get("id"),
            "lat": m["latitude"],
            "lng": m["longitude"],
            "popup": _popup(m),
        }
        for m in layout_markers(properties, radius_m, center)
    ]
    # "</" would close the inline script early
    data_blob = json.dumps(markers).replace("</", "<\\/")

    return f"""<!DOCTYPE html>
<html lang="sl">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Property Map</title>
<link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css">
<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
<link rel="stylesheet" href="https://unpkg.com/leaflet.markercluster@1.5.3/dist/MarkerCluster.css">
<link rel="stylesheet" href="https://unpkg.com/leaflet.markercluster@1.5.3/dist/MarkerCluster.Default.css">
<script src="https://unpkg.com/leaflet.markercluster@1.5.3/dist/leaflet.markercluster.js"></script>
<style>
  html, body {{ margin: 0; height: 100%; }}
  #map {{ height: 100vh; }}
</style>
</head>
<body>
<div id="map"></div>
<script>
  const markers = {data_blob};
  const map = L.map("map").setView([{center[0]}, {center[1]}], {zoom});
  L.tileLayer("https://{{s}}.tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png", {{
    attribution: "&copy; OpenStreetMap contributors"
  }}).addTo(map);
  const cluster = L.markerClusterGroup({{
    chunkedLoading: true,
    showCoverageOnHover: false,
    spiderfyOnEveryZoom: true,
    maxClusterRadius: {cluster_radius_px}
  }});
  for (const m of markers) {{
    cluster.addLayer(L.marker([m.lat, m.lng]).bindPopup(m.popup));
  }}
  map.addLayer(cluster);
</script>
</body>
</html>
"""

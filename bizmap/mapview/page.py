"""
Map page module.

Full-page Mapbox GL JS viewer for the business directory:
    - Markers and popups from the rendered FeatureCollection (colors and popup
      markup are computed in Python by `MapViewAdapter`)
    - Live Lng/Lat/Zoom readout
    - Search box and category filter over the embedded features
    - Optional 3D buildings and traffic layers
    - Admin panel (only when the page was opened with the admin flag):
      click the map to pick a location, fill the form, Save posts to
      `/businesses` and the error text from the relay is shown verbatim

Exports:
    MapPage: HTML generator
    render_map_page: convenience wrapper
"""

from __future__ import annotations

import html as html_module
import json
from typing import Any, Dict, List

from bizmap.domain.models import PowerType
from bizmap.mapview.view import MapOptions, ViewState

MAPBOX_GL_VERSION = "v3.4.0"


def _script_json(value: Any) -> str:
    # Safe to inline inside <script>: no closing tags survive.
    return json.dumps(value).replace("</", "<\\/")


class MapPage:
    """
    Directory map page.

    Custom full-page layout (no shared wrapper) because it needs the external
    Mapbox GL CSS/JS resources and an absolutely positioned map.
    """

    def __init__(
        self,
        access_token: str,
        view: ViewState,
        options: MapOptions,
        title: str = "Freetown Biz Map",
        api_base: str = "",
    ) -> None:
        self.access_token = access_token
        self.view = view
        self.options = options
        self.title = title
        self.api_base = api_base.rstrip("/")

    def render(self, features: Dict[str, Any], categories: List[str], admin: bool = False) -> str:
        """
        Generate the complete HTML document.

        Args:
            features: GeoJSON FeatureCollection from `GeoJsonEngine`
            categories: category list, "all" sentinel first
            admin: show the admin capture panel

        Returns:
            Complete HTML document string
        """
        css_content = self._generate_css()
        html_content = self._generate_html_content(categories, admin)
        js_content = self._generate_js(features, admin)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html_module.escape(self.title)}</title>

    <!-- Mapbox GL CSS -->
    <link rel="stylesheet" href="https://api.mapbox.com/mapbox-gl-js/{MAPBOX_GL_VERSION}/mapbox-gl.css"/>

    <style>
        {css_content}
    </style>
</head>
<body>
    {html_content}

    <!-- Mapbox GL JS -->
    <script src="https://api.mapbox.com/mapbox-gl-js/{MAPBOX_GL_VERSION}/mapbox-gl.js"></script>

    <script>
        {js_content}
    </script>
</body>
</html>"""

    def _generate_html_content(self, categories: List[str], admin: bool) -> str:
        esc = html_module.escape
        options = "".join(
            f'<option value="{esc(c, quote=True)}">{esc(c)}</option>' for c in categories
        )
        power_options = "".join(
            f'<option value="{p.value}">{p.value}</option>' for p in PowerType
        )
        admin_toggle = (
            '<button id="admin-open" class="btn-primary" onclick="openPanel()">Add business</button>'
            if admin
            else ""
        )
        admin_panel = ""
        if admin:
            admin_panel = f"""
        <div class="admin-panel" id="admin-panel" hidden>
            <h3>New business</h3>
            <div id="pick-hint" class="hint">Click the map to pick a location.</div>
            <div id="picked" class="hint"></div>
            <input id="f-name" placeholder="Name" oninput="updateSave()"/>
            <input id="f-category" placeholder="Category (General)"/>
            <select id="f-power">{power_options}</select>
            <label><input type="checkbox" id="f-card"/> Accepts card payment</label>
            <input id="f-photo" placeholder="Photo URL (optional)"/>
            <div class="button-group">
                <button id="save-btn" class="btn-primary" onclick="saveBusiness()" disabled>Save</button>
                <button class="btn-secondary" onclick="cancelPanel()">Cancel</button>
            </div>
            <div id="form-error" class="error-text"></div>
        </div>"""

        return f"""
        <div id="map"></div>

        <div class="control-panel">
            <h1>{esc(self.title)}</h1>
            <div id="readout" class="readout">{esc(self.view.describe())}</div>
            <input id="search" placeholder="Search name or category" oninput="applyFilter()"/>
            <select id="category" onchange="applyFilter()">{options}</select>
            <div id="count" class="hint"></div>
            {admin_toggle}
        </div>
        {admin_panel}
        """

    def _generate_css(self) -> str:
        return """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: "Open Sans", Arial, sans-serif; background: #111827; }
        #map { position: absolute; top: 0; bottom: 0; width: 100%; }
        .control-panel, .admin-panel {
            position: absolute; z-index: 10; background: white; padding: 16px;
            border-radius: 8px; box-shadow: 0 4px 12px rgba(0,0,0,0.3);
            display: flex; flex-direction: column; gap: 8px; width: 280px;
        }
        .control-panel { top: 16px; left: 16px; }
        .admin-panel { top: 16px; right: 16px; }
        .control-panel h1 { font-size: 20px; color: #2563eb; }
        .readout { font-family: monospace; font-size: 12px; color: #374151; }
        .hint { font-size: 12px; color: #6b7280; }
        .error-text { font-size: 12px; color: #b91c1c; }
        input, select { padding: 6px; border: 1px solid #d1d5db; border-radius: 4px; }
        .button-group { display: flex; gap: 8px; }
        .btn-primary { background: #2563eb; color: white; border: none; padding: 8px; border-radius: 4px; cursor: pointer; }
        .btn-primary:disabled { background: #93c5fd; cursor: not-allowed; }
        .btn-secondary { background: #e5e7eb; border: none; padding: 8px; border-radius: 4px; cursor: pointer; }
        """

    def _layer_js(self) -> str:
        snippets = []
        if self.options.show_buildings:
            snippets.append("""
            map.addLayer({
                id: '3d-buildings', source: 'composite', 'source-layer': 'building',
                filter: ['==', 'extrude', 'true'], type: 'fill-extrusion', minzoom: 15,
                paint: {
                    'fill-extrusion-color': '#aaa',
                    'fill-extrusion-height': ['get', 'height'],
                    'fill-extrusion-base': ['get', 'min_height'],
                    'fill-extrusion-opacity': 0.6
                }
            });""")
        if self.options.show_traffic:
            snippets.append("""
            map.addSource('traffic', { type: 'vector', url: 'mapbox://mapbox.mapbox-traffic-v1' });
            map.addLayer({
                id: 'traffic', type: 'line', source: 'traffic', 'source-layer': 'traffic',
                paint: {
                    'line-width': 2,
                    'line-color': ['match', ['get', 'congestion'],
                        'low', '#22c55e', 'moderate', '#f59e0b', 'heavy', '#ef4444',
                        'severe', '#7f1d1d', '#9ca3af']
                }
            });""")
        return "".join(snippets)

    def _generate_js(self, features: Dict[str, Any], admin: bool) -> str:
        view = self.view
        return f"""
        mapboxgl.accessToken = {_script_json(self.access_token)};
        const API_BASE = {_script_json(self.api_base)};
        const ADMIN = {_script_json(admin)};
        const FEATURES = {_script_json(features)};

        const map = new mapboxgl.Map({{
            container: 'map',
            style: {_script_json(self.options.style)},
            center: [{view.center_lng}, {view.center_lat}],
            zoom: {view.zoom},
            pitch: {view.pitch},
            antialias: true
        }});

        map.on('load', () => {{{self._layer_js()}
        }});

        map.on('move', () => {{
            const c = map.getCenter();
            document.getElementById('readout').textContent =
                `Lng: ${{c.lng.toFixed(4)}} | Lat: ${{c.lat.toFixed(4)}} | Zoom: ${{map.getZoom().toFixed(2)}}`;
        }});

        // Markers currently on the map, keyed by record id.
        const drawn = new Map();

        function applyFilter() {{
            const needle = document.getElementById('search').value.trim().toLowerCase();
            const category = document.getElementById('category').value;
            const keep = new Set();
            for (const f of FEATURES.features) {{
                const p = f.properties;
                if (category !== 'all' && p.category !== category) continue;
                if (needle && !p.name.toLowerCase().includes(needle)
                    && !p.category.toLowerCase().includes(needle)) continue;
                keep.add(f.id);
                if (!drawn.has(f.id)) {{
                    const m = new mapboxgl.Marker({{ color: p.color }})
                        .setLngLat(f.geometry.coordinates)
                        .setPopup(new mapboxgl.Popup().setHTML(p.popup))
                        .addTo(map);
                    drawn.set(f.id, m);
                }}
            }}
            for (const [id, m] of drawn) {{
                if (!keep.has(id)) {{ m.remove(); drawn.delete(id); }}
            }}
            document.getElementById('count').textContent = `${{keep.size}} businesses`;
        }}
        applyFilter();

        // Admin capture: idle -> awaiting location -> ready
        let captureState = 'idle';
        let picked = null;
        let pickMarker = null;

        function openPanel() {{
            if (!ADMIN) return;
            captureState = 'awaiting';
            document.getElementById('admin-panel').hidden = false;
            updateSave();
        }}

        function cancelPanel() {{
            captureState = 'idle';
            picked = null;
            if (pickMarker) {{ pickMarker.remove(); pickMarker = null; }}
            for (const id of ['f-name', 'f-category', 'f-photo']) document.getElementById(id).value = '';
            document.getElementById('f-card').checked = false;
            document.getElementById('picked').textContent = '';
            document.getElementById('form-error').textContent = '';
            document.getElementById('admin-panel').hidden = true;
        }}

        function updateSave() {{
            const name = document.getElementById('f-name').value.trim();
            document.getElementById('save-btn').disabled = !(captureState === 'ready' && name && picked);
        }}

        map.on('click', (e) => {{
            if (!ADMIN || captureState === 'idle') return;
            picked = [e.lngLat.lng, e.lngLat.lat];
            captureState = 'ready';
            if (pickMarker) pickMarker.remove();
            pickMarker = new mapboxgl.Marker({{ color: '#111827' }}).setLngLat(picked).addTo(map);
            document.getElementById('picked').textContent =
                `Picked: ${{picked[0].toFixed(5)}}, ${{picked[1].toFixed(5)}}`;
            updateSave();
        }});

        async function saveBusiness() {{
            const payload = {{
                name: document.getElementById('f-name').value.trim(),
                category: document.getElementById('f-category').value.trim(),
                powerType: document.getElementById('f-power').value,
                acceptsCardPayment: document.getElementById('f-card').checked,
                photoUrl: document.getElementById('f-photo').value.trim() || null,
                position: picked
            }};
            const errorBox = document.getElementById('form-error');
            errorBox.textContent = '';
            try {{
                const res = await fetch(`${{API_BASE}}/businesses`, {{
                    method: 'POST',
                    headers: {{ 'Content-Type': 'application/json' }},
                    body: JSON.stringify(payload)
                }});
                const body = await res.json();
                if (body.error) {{ errorBox.textContent = body.error.message; return; }}
                window.location.reload();
            }} catch (err) {{
                errorBox.textContent = String(err);
            }}
        }}
        """


def render_map_page(
    features: Dict[str, Any],
    categories: List[str],
    access_token: str,
    view: ViewState,
    options: MapOptions,
    admin: bool = False,
    api_base: str = "",
) -> str:
    """Render the directory map page in one call."""
    page = MapPage(access_token=access_token, view=view, options=options, api_base=api_base)
    return page.render(features, categories, admin=admin)


__all__ = ["MAPBOX_GL_VERSION", "MapPage", "render_map_page"]

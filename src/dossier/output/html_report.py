"""
HTML Console Renderer - Turn the session state into the operator page.

This module renders the single-page analysis console: the input dossier
(upload form and directives), and the analytical report panel showing the
idle placeholder, the loading indicator, the error panel or the report.
The page is self-contained: CSS and JS are embedded.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jinja2 import Environment, Template

from dossier.core.media import ACCEPT_ATTRIBUTE, SUPPORTED_FORMATS
from dossier.core.models import FileCategory, ThreatLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThreatDisplay:
    label: str
    css_class: str


THREAT_LEVEL_DISPLAY: Dict[ThreatLevel, ThreatDisplay] = {
    ThreatLevel.LOW: ThreatDisplay("LOW", "threat-low"),
    ThreatLevel.MEDIUM: ThreatDisplay("MEDIUM", "threat-medium"),
    ThreatLevel.HIGH: ThreatDisplay("HIGH", "threat-high"),
    ThreatLevel.CRITICAL: ThreatDisplay("CRITICAL", "threat-critical"),
    ThreatLevel.UNKNOWN: ThreatDisplay("UNKNOWN", "threat-unknown"),
}

LOADING_MESSAGES = [
    "Establishing connection with the ECHELON network...",
    "Decoding data stream...",
    "Running heuristic analysis...",
    "Correlating with intelligence databases...",
    "Generating report...",
]

FILE_ICONS = {
    FileCategory.AUDIO: "🎧",
    FileCategory.DOCUMENT: "📄",
}


def threat_level_display(level: Any) -> ThreatDisplay:
    """Display info for a threat level; anything unrecognized shows as UNKNOWN."""
    try:
        return THREAT_LEVEL_DISPLAY[ThreatLevel(level)]
    except ValueError:
        return THREAT_LEVEL_DISPLAY[ThreatLevel.UNKNOWN]


# =============================================================================
# EMBEDDED CSS
# =============================================================================

EMBEDDED_CSS = """
:root {
    --bg: #030712;
    --panel: rgba(17, 24, 39, 0.6);
    --border: rgba(103, 232, 249, 0.2);
    --accent: #67e8f9;
    --accent-strong: #22d3ee;
    --text: #d1d5db;
    --muted: #6b7280;
    --danger: #f87171;
}
* { box-sizing: border-box; }
body {
    margin: 0;
    min-height: 100vh;
    background: linear-gradient(135deg, #111827, #000 50%, #111827);
    color: var(--accent);
    font-family: ui-monospace, SFMono-Regular, Menlo, monospace;
}
header {
    position: sticky; top: 0;
    display: flex; justify-content: space-between; align-items: center;
    padding: 1rem 2rem;
    border-bottom: 1px solid var(--border);
    background: rgba(0, 0, 0, 0.5);
}
header h1 { margin: 0; font-size: 1.4rem; letter-spacing: 0.2em; }
.pulse { width: 1rem; height: 1rem; border-radius: 50%; background: #ef4444; animation: pulse 2s infinite; }
main { display: grid; grid-template-columns: 1fr 1fr; gap: 2rem; padding: 2rem; }
@media (max-width: 1024px) { main { grid-template-columns: 1fr; } }
.panel {
    background: var(--panel);
    border: 1px solid var(--border);
    border-radius: 0.5rem;
    padding: 1.5rem;
    min-height: 40rem;
    display: flex; flex-direction: column;
}
.panel h2 { margin-top: 0; font-size: 1.1rem; border-bottom: 1px solid var(--border); padding-bottom: 0.5rem; }
.dropzone {
    border: 2px dashed #4b5563; border-radius: 0.5rem;
    padding: 2rem; text-align: center; color: #9ca3af;
}
.dropzone:hover { border-color: var(--accent-strong); }
.formats { margin-top: 1rem; font-size: 0.75rem; color: var(--muted); display: grid; grid-template-columns: 1fr 1fr; gap: 0.25rem 1rem; }
.formats strong { color: var(--accent-strong); }
textarea {
    width: 100%; background: #1f2937; color: var(--text);
    border: 1px solid #4b5563; border-radius: 0.375rem; padding: 0.5rem; resize: none;
}
button {
    width: 100%; margin-top: 1rem; padding: 0.75rem;
    background: #0891b2; color: #fff; font-weight: bold;
    border: none; border-radius: 0.5rem; cursor: pointer;
}
button:disabled { background: #374151; color: #9ca3af; cursor: not-allowed; }
.notice { margin-top: 1rem; padding: 0.75rem; border: 1px solid var(--danger); color: var(--danger); border-radius: 0.375rem; }
.placeholder, .loading, .error { flex-grow: 1; display: flex; flex-direction: column; align-items: center; justify-content: center; text-align: center; }
.placeholder { color: var(--muted); }
.spinner { width: 4rem; height: 4rem; border: 4px dashed var(--accent-strong); border-radius: 50%; animation: spin 2s linear infinite; }
.error { color: var(--danger); }
.report { color: var(--text); }
.report h4 { color: var(--accent-strong); margin-bottom: 0.25rem; }
.report .top { display: grid; grid-template-columns: 1fr 2fr; gap: 1.5rem; }
.report .pre { white-space: pre-wrap; }
.preview img, .preview video { width: 100%; max-height: 16rem; object-fit: contain; border: 2px solid rgba(14, 116, 144, 0.5); border-radius: 0.5rem; }
.preview .icon { font-size: 4rem; min-height: 12rem; display: flex; align-items: center; justify-content: center; background: rgba(31, 41, 55, 0.5); border-radius: 0.5rem; }
.file-name { font-size: 0.75rem; text-align: center; color: #9ca3af; overflow: hidden; text-overflow: ellipsis; }
.badge { display: inline-flex; align-items: center; gap: 0.5rem; padding: 0.5rem; border-radius: 0.25rem; font-weight: bold; letter-spacing: 0.1em; }
.badge .dot { width: 0.75rem; height: 0.75rem; border-radius: 50%; }
.threat-low { color: #86efac; background: rgba(34, 197, 94, 0.2); } .threat-low .dot { background: #22c55e; }
.threat-medium { color: #fde047; background: rgba(234, 179, 8, 0.2); } .threat-medium .dot { background: #eab308; }
.threat-high { color: #fdba74; background: rgba(249, 115, 22, 0.2); } .threat-high .dot { background: #f97316; }
.threat-critical { color: #fca5a5; background: rgba(220, 38, 38, 0.2); } .threat-critical .dot { background: #dc2626; }
.threat-unknown { color: #d1d5db; background: rgba(107, 114, 128, 0.2); } .threat-unknown .dot { background: #6b7280; }
footer { text-align: center; padding: 1rem; font-size: 0.75rem; color: #4b5563; border-top: 1px solid #1f2937; }
.hidden { display: none; }
@keyframes spin { to { transform: rotate(360deg); } }
@keyframes pulse { 50% { opacity: 0.3; } }
"""


# =============================================================================
# EMBEDDED JS
# =============================================================================

EMBEDDED_JS = """
(function () {
    const form = document.getElementById('analysis-form');
    const messages = JSON.parse(document.getElementById('loading-messages').textContent);
    let timer = null;

    function startLoading() {
        const panel = document.getElementById('report-body');
        const loading = document.getElementById('loading-template').content.cloneNode(true);
        panel.replaceChildren(loading);
        const status = panel.querySelector('.status');
        let index = 0;
        timer = setInterval(function () {
            index = (index + 1) % messages.length;
            status.textContent = messages[index];
        }, 2000);
    }

    if (form) {
        form.addEventListener('submit', function () {
            const button = form.querySelector('button');
            button.disabled = true;
            button.textContent = 'ANALYZING...';
            startLoading();
        });
    }
    if (document.body.dataset.state === 'submitting') {
        setTimeout(function () { window.location.reload(); }, 3000);
    }
    window.addEventListener('beforeunload', function () { if (timer) clearInterval(timer); });
})();
"""


# =============================================================================
# TEMPLATES
# =============================================================================

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ title }}</title>
<style>{{ css | safe }}</style>
</head>
<body data-state="{{ state.kind }}">
<header>
  <h1>{{ title }}</h1>
  <div class="pulse"></div>
</header>
<main>
  <section class="panel" id="input-panel">
    <h2>Input Dossier</h2>
    <form id="analysis-form" method="post" action="/analyze" enctype="multipart/form-data">
      <label class="dropzone" for="file-input">
        <p>Drag and drop a file here</p>
        <p><small>or click to choose (formats below)</small></p>
        <input id="file-input" type="file" name="file" accept="{{ accept }}"{% if busy %} disabled{% endif %}>
      </label>
      <div class="formats">
        {% for group, formats in supported_formats.items() %}
        <p><strong>{{ group }}:</strong> {{ formats }}</p>
        {% endfor %}
      </div>
      {% if notice %}
      <div class="notice" role="alert">{{ notice }}</div>
      {% endif %}
      <label for="directive">Additional analytical directives:</label>
      <textarea id="directive" name="directive" rows="3"
        placeholder="E.g. 'Focus on identifying vehicles and their licence plates'..."{% if busy %} disabled{% endif %}>{{ directive }}</textarea>
      <button type="submit"{% if busy %} disabled{% endif %}>{% if busy %}ANALYZING...{% else %}START ANALYSIS{% endif %}</button>
    </form>
  </section>

  <section class="panel" id="report-panel">
    <h2>Analytical Report</h2>
    <div id="report-body">
    {% if state.kind == "submitting" %}
      {{ loading() }}
    {% elif state.kind == "failed" %}
      <div class="error">
        <div style="font-size:4rem">⚠</div>
        <h3>Transmission Error</h3>
        <p>{{ state.error }}</p>
      </div>
    {% elif state.kind == "success" %}
      {{ report(state) }}
    {% else %}
      <div class="placeholder">
        <p>Awaiting data for analysis...</p>
        <p><small>System ready and operational.</small></p>
      </div>
    {% endif %}
    </div>
  </section>
</main>
<footer><p>CLASSIFIED // FIVE EYES INTELLIGENCE // FOR AUTHORIZED PERSONNEL ONLY</p></footer>

<template id="loading-template">{{ loading() }}</template>
<script id="loading-messages" type="application/json">{{ loading_messages | tojson }}</script>
<script>{{ js | safe }}</script>
</body>
</html>
"""

MACROS_TEMPLATE = """
{% macro loading() %}
<div class="loading">
  <div class="spinner"></div>
  <p>ANALYSIS IN PROGRESS</p>
  <p class="status"><small>{{ loading_messages[0] }}</small></p>
</div>
{% endmacro %}

{% macro report(state) %}
{% set result = state.result %}
{% set threat = threat_display(result.threat_assessment.level) %}
<div class="report">
  <div class="top">
    <div class="preview">
      {% if state.category.value == "image" and state.preview %}
        <img src="{{ state.preview.url }}" alt="Analyzed file">
      {% elif state.category.value == "video" and state.preview %}
        <video src="{{ state.preview.url }}" controls>Your browser does not support the video tag.</video>
      {% else %}
        <div class="icon">{{ file_icons.get(state.category, "📄") }}</div>
      {% endif %}
      <p class="file-name">{{ state.file_name }}</p>
    </div>
    <div>
      <h4>Threat level:</h4>
      <div class="badge {{ threat.css_class }}" data-threat-level="{{ result.threat_assessment.level.value }}">
        <span class="dot"></span><span>{{ threat.label }}</span>
      </div>
      <p>{{ result.threat_assessment.justification }}</p>
      <h4>Summary:</h4>
      <p>{{ result.executive_summary }}</p>
    </div>
  </div>

  <h4>Detailed content analysis:</h4>
  <p class="pre">{{ result.detailed_analysis }}</p>

  <h4>Location assessment:</h4>
  <p><strong>Probable location:</strong> {{ result.location_assessment.potential_location }}</p>
  <p><strong>Reasoning:</strong> {{ result.location_assessment.reasoning }}</p>

  {% if result.subject_profiles %}
  <h4>Identified subjects:</h4>
  <ul class="subjects">
    {% for profile in result.subject_profiles %}<li>{{ profile }}</li>{% endfor %}
  </ul>
  {% endif %}

  <h4>Metadata insights (inferred):</h4>
  <p>{{ result.metadata_insights }}</p>
</div>
{% endmacro %}
"""


# =============================================================================
# CONSOLE RENDERER
# =============================================================================


class ConsoleRenderer:
    """
    Renders the operator console for a given session state.

    The page markup is shared by every state; only the report panel body
    changes between Idle, Submitting, Success and Failed.
    """

    def __init__(self, title: str = "FIVE EYES // MULTIMODAL ANALYSIS AGENT") -> None:
        self._title = title
        self._env = Environment(autoescape=True)
        self._env.globals.update(
            threat_display=threat_level_display,
            file_icons=FILE_ICONS,
            loading_messages=LOADING_MESSAGES,
        )
        macros = self._env.from_string(MACROS_TEMPLATE).module
        self._env.globals.update(loading=macros.loading, report=macros.report)
        self._page: Template = self._env.from_string(PAGE_TEMPLATE)

    def render_page(
        self,
        state: Any,
        notice: Optional[str] = None,
        directive: str = "",
    ) -> str:
        """
        Render the complete console page.

        Args:
            state: Current session state (Idle, Submitting, Success or Failed)
            notice: Validation message to show under the upload area
            directive: Operator directive to keep in the textarea

        Returns:
            HTML string
        """
        context = self._build_context(state, notice, directive)
        logger.debug(f"Rendering console page in state {state.kind}")
        return self._page.render(**context)

    def _build_context(self, state: Any, notice: Optional[str], directive: str) -> Dict[str, Any]:
        return {
            "title": self._title,
            "css": EMBEDDED_CSS,
            "js": EMBEDDED_JS,
            "state": state,
            "busy": state.kind == "submitting",
            "notice": notice,
            "directive": directive,
            "accept": ACCEPT_ATTRIBUTE,
            "supported_formats": SUPPORTED_FORMATS,
        }

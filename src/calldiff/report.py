from __future__ import annotations

import datetime as _dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Template

from .models import Classification
from .stats import DiffStats

logger = logging.getLogger(__name__)


def _pct(x: Optional[float]) -> str:
    if x is None:
        return "n/a"
    return f"{100.0 * x:.2f}%"


_TEXT_TEMPLATE = Template(
    """calldiff {{ version }}
{% if truncated %}WARNING: stopped early after reaching the mismatch limit; counts are partial.
{% endif %}
Positions compared : {{ total }}
{% for name, n in counts.items() %}  {{ "%-9s"|format(name) }} : {{ n }}
{% endfor %}
Concordance (MATCH / aligned) : {{ concordance }}
Overlap (aligned / total)     : {{ overlap }}
Mismatches, genotype differs  : {{ mismatch_kinds.genotype }}
Mismatches, alleles differ    : {{ mismatch_kinds.alleles }}
{% if reference_inconsistent %}Reference-allele disagreements : {{ reference_inconsistent }}
{% endif %}{% if by_type %}
By variant type:
{% for cls, types in by_type.items() %}  {{ cls }}
{% for vt, n in types.items() %}    {{ "%-13s"|format(vt) }} : {{ n }}
{% endfor %}{% endfor %}{% endif %}""",
    keep_trailing_newline=True,
)


_HTML_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>calldiff Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    .warn { color: #a00; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>calldiff Report</h1>
<p class="small">Generated: {{ generated_at }}</p>
{% if truncated %}<p class="warn">Stopped early after reaching the mismatch limit; counts are partial.</p>{% endif %}

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>LHS</th><td><code>{{ run.lhs }}</code></td></tr>
      <tr><th>RHS</th><td><code>{{ run.rhs }}</code></td></tr>
      <tr><th>Reference</th><td><code>{{ run.reference }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Comparison</h3>
    <table>
      <tr><th>Equivalence rule</th><td>{{ run.equivalence }}</td></tr>
      <tr><th>Contig order</th><td>{{ run.contig_order }}</td></tr>
      <tr><th>Presorted inputs</th><td>{{ run.presorted }}</td></tr>
    </table>
  </div>
</div>

<h2>Classification</h2>
<table>
  {% for name, n in counts.items() %}<tr><th>{{ name }}</th><td>{{ n }}</td></tr>
  {% endfor %}<tr><th>Total positions</th><td>{{ total }}</td></tr>
  <tr><th>Concordance</th><td>{{ concordance }}</td></tr>
  <tr><th>Overlap</th><td>{{ overlap }}</td></tr>
  <tr><th>Mismatch: genotype differs</th><td>{{ mismatch_kinds.genotype }}</td></tr>
  <tr><th>Mismatch: alleles differ</th><td>{{ mismatch_kinds.alleles }}</td></tr>
  <tr><th>Reference-allele disagreements</th><td>{{ reference_inconsistent }}</td></tr>
</table>

{% if by_type %}
<h2>By variant type</h2>
<table>
  <tr><th>Classification</th><th>Variant type</th><th>Count</th></tr>
  {% for cls, types in by_type.items() %}{% for vt, n in types.items() %}
  <tr><td>{{ cls }}</td><td>{{ vt }}</td><td>{{ n }}</td></tr>
  {% endfor %}{% endfor %}
</table>
{% endif %}

{% if plot %}
<h2>Plots</h2>
<div class="card">
  <img src="{{ plot }}" alt="classification counts">
</div>
{% endif %}

<hr>
<p class="small">calldiff {{ version }}</p>
</body>
</html>"""
)


def _context(stats: DiffStats) -> Dict[str, Any]:
    d = stats.to_dict()
    return {
        "counts": {cls.value: stats.count(cls) for cls in Classification},
        "total": d["total"],
        "concordance": _pct(d["concordance"]),
        "overlap": _pct(d["overlap"]),
        "mismatch_kinds": d["mismatch_kinds"],
        "reference_inconsistent": d["reference_inconsistent"],
        "by_type": d["by_variant_type"],
        "truncated": d["truncated"],
    }


def render_text(stats: DiffStats, *, version: str) -> str:
    """Human-readable summary printed to stdout."""
    return _TEXT_TEMPLATE.render(version=version, **_context(stats))


def render_json(stats: DiffStats, *, run: Optional[Dict[str, Any]] = None) -> str:
    payload: Dict[str, Any] = {"stats": stats.to_dict()}
    if run is not None:
        payload["run"] = run
    return json.dumps(payload, indent=2, sort_keys=True)


def render_report(
    *,
    out_path: str | Path,
    version: str,
    stats: DiffStats,
    run: Dict[str, Any],
    plot: Optional[str] = None,
) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    html = _HTML_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        run=run,
        plot=plot,
        **_context(stats),
    )
    out_path.write_text(html, encoding="utf-8")
    logger.info("HTML report written: %s", out_path)
    return out_path

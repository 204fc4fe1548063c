"""Inline CSS used by the sweep report page."""

CSS = r"""
:root {
  --bg: #f8f8f8;
  --fg: #1a1a1a;
  --muted: #6a6a6a;
  --border: #e3e3e3;
  --active: #0b5ed7;
  --error: #b42318;
  --warning: #b54708;
  --info: #475467;
  --mono: ui-monospace, "SF Mono", "Consolas", "Liberation Mono", monospace;
  --page-max: 980px;
}

* { border-radius: 0; box-shadow: none; }

body {
  font-family: var(--mono);
  font-size: 15px;
  line-height: 1.6;
  max-width: var(--page-max);
  margin: 0 auto;
  padding: 2.25rem 1.5rem 3rem;
  background: var(--bg);
  color: var(--fg);
}

header {
  display: flex;
  justify-content: space-between;
  align-items: baseline;
  border-bottom: 1px solid var(--border);
  padding-bottom: 0.75rem;
  margin-bottom: 1.5rem;
  gap: 0.5rem 1rem;
  flex-wrap: wrap;
}

h1, h2 { margin: 0 0 0.75rem 0; font-weight: 600; }
h1 { font-size: 18px; }
h2 { font-size: 13px; color: var(--muted); letter-spacing: 0.02em; }

.muted { color: var(--muted); font-size: 13px; }
.rule { border-top: 1px solid var(--border); margin: 1.25rem 0; }

ul { margin: 0.75rem 0; padding-left: 1.25rem; }
li { margin: 0.35rem 0; }

.bar { display: flex; height: 1.25rem; border: 1px solid var(--border); margin: 0.75rem 0; }
.bar span { border-right: 1px solid var(--bg); background: var(--active); opacity: 0.25; }
.bar span.on { opacity: 0.85; }

section.segment { border-left: 2px solid var(--active); padding-left: 0.75rem; margin: 1rem 0; }
section.segment code { background: #f1f1f1; padding: 0.1rem 0.25rem; }

.sev-error { color: var(--error); font-weight: 600; }
.sev-warning { color: var(--warning); font-weight: 600; }
.sev-info { color: var(--info); }

@media print {
  body { background: #fff; color: #000; max-width: none; padding: 1rem; }
}

@media (max-width: 700px) {
  body { padding: 1.5rem 1rem 2rem; }
}
"""

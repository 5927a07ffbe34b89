"""Core (UI-agnostic) portfolio dashboard logic.

This package contains:
- typed deal / unit / financial records and CSV loading (pandas)
- deal filter normalization
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- spreadsheet / text report export
"""

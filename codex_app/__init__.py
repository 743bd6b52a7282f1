"""
Codex -- PySide6 desktop front end for the world encyclopedia.

Package layout:
    panels/     The encyclopedia panel (entry list + entry detail)
    widgets/    Markup field, markup view, link chips, resizable images
    services/   Application services (event bus, upload worker)
    theme/      Dark theme and custom stylesheets
"""

"""View modules for manual routing.

The app uses the router in `services/router.py` and the registry in `app.py`
instead of Streamlit's automatic multi-page system. Every page lives under
`views/` and exposes `view(resolver, controller)`; `controller` is the object
built by the page's factory in `PAGE_REGISTRY`, or None for pages without
live data.

Add any new page as a module with such a `view()` callable and register it in
`PAGE_REGISTRY` inside `app.py`.
"""

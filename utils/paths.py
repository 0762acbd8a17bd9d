import os


def default_data_dir() -> str:
    """Resolve the data directory across local dev and container (/mount/src) layouts.

    Strategy:
    1. Project-root relative `data/` if it already exists.
    2. `/mount/src/data` (Streamlit container pattern) if it exists.
    3. Fall back to project-root `data/` (created on first write).
    """
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    local = os.path.join(base_dir, 'data')
    if os.path.isdir(local):
        return local
    mounted = '/mount/src/data'
    if os.path.isdir(mounted):
        return mounted
    return local


def collection_file(data_dir: str, path: str) -> str:
    """Map a slash-separated collection path onto a JSON file under data_dir."""
    parts = [p for p in path.strip('/').split('/') if p]
    if not parts or any(p in ('.', '..') for p in parts):
        raise ValueError(f"Invalid collection path: {path!r}")
    return os.path.join(data_dir, *parts[:-1], parts[-1] + '.json')


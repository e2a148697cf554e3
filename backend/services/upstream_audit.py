"""Mapping of DataForSEO task envelopes onto audit log columns."""

from typing import Any, Optional

from adapters.seo.dataforseo_models import DataForSEOTask


def task_columns(task: DataForSEOTask, search_engine_key: str) -> dict[str, Any]:
    """Task table columns taken from a provider task.

    The echoed request data names the search engine differently per
    endpoint ("se_type" for keyword ideas, "se" for SERP).
    """
    data = task.data
    location: Optional[Any] = data.get("location_code")
    return {
        "status_from_api": task.status_message,
        "result_status_code": task.status_code,
        "result_status_message": task.status_message,
        "result_time": task.time,
        "result_cost": task.cost,
        "result_count": task.result_count,
        "location": str(location) if location is not None else None,
        "path": task.path,
        "search_engine": data.get(search_engine_key),
        "language_code": data.get("language_code"),
        "device": data.get("device"),
        "os": data.get("os"),
        "depth": data.get("depth"),
        "result_data": data or None,
    }

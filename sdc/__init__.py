"""Stock data collection: a Redis work queue, HTTP fetching, HTML table parsing and exporters."""

__version__ = "0.1.0"

__all__ = [
    "cache",
    "common",
    "errors",
    "exporters",
    "htmldom",
    "httpreader",
    "mscollector",
    "msschema",
    "parallel",
    "proxies",
    "sacollector",
    "saparser",
    "values",
    "workerbuilder",
]
"""Path parameter converters for route patterns like ``{page:int}``."""

# name -> regex matching the captured text
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "path": r".*",
}

"""
Detecting the framework's own version.

The version is not stored in the codebase: it comes from the tags
via the packaging metadata. It is determined once when the code is loaded.
"""
import importlib.metadata

version: str | None = None

try:
    name, *_ = __name__.split('.')  # usually "shimmer", unless renamed/forked.
    version = importlib.metadata.version(name)
except importlib.metadata.PackageNotFoundError:
    pass  # running from a source tree, not installed.

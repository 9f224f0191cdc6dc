"""
Module- and file-loading to get the controllers to run.

There is no global registry of controllers: the loaded files/modules must
expose a factory (a callable, by default named ``controllers``), which builds
and returns the controllers. The factory is the composition root of the app.

Two loading modes are supported, both are equivalent to Python CLI:

* Plain files (`shimmer run file.py`).
* Importable modules (`shimmer run -m pkg.mod`).

The factory name can be overridden per target with a colon:
``file.py:make_all`` or ``pkg.mod:make_all``.
"""
import importlib
import importlib.abc
import importlib.util
import os.path
import sys
import types
from collections.abc import Callable, Iterable
from typing import Any, cast

DEFAULT_FACTORY = 'controllers'


def _split(target: str, default: str) -> tuple[str, str]:
    # Mind the Windows drive letters in paths: the suffix must be an identifier to be a factory.
    base, sep, attr = target.rpartition(':')
    if sep and attr and attr.isidentifier():
        return base, attr
    return target, default


def load_file(path: str, *, idx: int = 0) -> types.ModuleType:
    sys.path.insert(0, os.path.abspath(os.path.dirname(path)))
    name = f'__shimmer_script_{idx}__{path}'  # same pseudo-name as '__main__'
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec) if spec is not None else None
    loader = cast(importlib.abc.Loader, spec.loader) if spec is not None else None
    if module is None or loader is None:
        raise ImportError(f"Failed loading {path}: no module or loader.")
    sys.modules[name] = module
    loader.exec_module(module)
    return module


def preload(
        paths: Iterable[str],
        modules: Iterable[str],
        *,
        factory: str = DEFAULT_FACTORY,
) -> list[Callable[[], Any]]:
    """
    Load the files/modules and collect their composition-root factories.
    """
    factories: list[Callable[[], Any]] = []
    for idx, target in enumerate(paths):
        path, attr = _split(target, factory)
        factories.append(_get_factory(load_file(path, idx=idx), attr))
    for target in modules:
        name, attr = _split(target, factory)
        factories.append(_get_factory(importlib.import_module(name), attr))
    return factories


def _get_factory(module: types.ModuleType, attr: str) -> Callable[[], Any]:
    try:
        fn = getattr(module, attr)
    except AttributeError:
        raise ImportError(f"No factory {attr!r} in {module.__name__}.") from None
    if not callable(fn):
        raise ImportError(f"The factory {attr!r} in {module.__name__} is not callable.")
    return cast(Callable[[], Any], fn)

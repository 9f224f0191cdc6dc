import functools
import sys

import click.testing
import pytest

from shimmer.cli import main

SCRIPT1 = """
import shimmer

async def nothing():
    return
    yield

def controllers():
    return [shimmer.Controller(
        name='shim-1',
        parent_kind='Gateway',
        parents=shimmer.Informer(kind='Gateway', source=nothing()),
        dependents=shimmer.Informer(kind='Certificate', source=nothing()),
        reconciler=lambda **_: None,
    )]
"""

SCRIPT2 = """
import shimmer

async def nothing():
    return
    yield

def make_all():
    return shimmer.Controller(
        name='shim-2',
        parent_kind='Ingress',
        parents=shimmer.Informer(kind='Ingress', source=nothing()),
        dependents=shimmer.Informer(kind='Certificate', source=nothing()),
        reconciler=lambda **_: None,
    )

controllers = 'not a factory'
"""


@pytest.fixture(autouse=True)
def srcdir(tmpdir):
    tmpdir.join('handler1.py').write(SCRIPT1)
    tmpdir.join('handler2.py').write(SCRIPT2)
    pkgdir = tmpdir.mkdir('package')
    pkgdir.join('__init__.py').write('')
    pkgdir.join('module_1.py').write(SCRIPT1)
    pkgdir.join('module_2.py').write(SCRIPT2)

    sys.path.insert(0, str(tmpdir))
    try:
        with tmpdir.as_cwd():
            yield tmpdir
    finally:
        sys.path.remove(str(tmpdir))


@pytest.fixture(autouse=True)
def clean_modules_cache():
    # Otherwise, the first loaded test-modules remain there forever,
    # preventing 2nd and further tests from passing.
    for key in list(sys.modules.keys()):
        if key.startswith('package'):
            del sys.modules[key]


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def configure(mocker):
    return mocker.patch('shimmer._core.actions.loggers.configure')


@pytest.fixture()
def preload(mocker):
    return mocker.patch('shimmer._cogs.helpers.loaders.preload', return_value=[])


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('shimmer._core.reactor.running.run')

"""
pytest configuration and fixtures for remotesplit tests
"""

import asyncio
import types

import pytest

from remotesplit.core.types import PackageSizeReport


# Fake package trees

HEAVY_CORE = "VALUE = 1\n" * 4000


@pytest.fixture
def app_tree(tmp_path):
    """
    Write an application with an entry script and a dependency root.

    Layout::

        app/main.py            imports heavypkg, lightmod, helpers, json
        app/helpers.py
        venv/lib/site-packages/heavypkg/__init__.py
        venv/lib/site-packages/heavypkg/core.py
        venv/lib/site-packages/heavypkg/extras/__init__.py
        venv/lib/site-packages/heavypkg/extras/plots.py
        venv/lib/site-packages/lightmod.py
        venv/lib/site-packages/unusedpkg/__init__.py
        venv/lib/site-packages/heavypkg-1.0.dist-info/METADATA

    Returns:
        SimpleNamespace with ``entry``, ``site_packages`` and ``app`` paths
    """
    app = tmp_path / "app"
    site_packages = tmp_path / "venv" / "lib" / "site-packages"
    app.mkdir()
    site_packages.mkdir(parents=True)

    (app / "main.py").write_text(
        "import json\n"
        "import heavypkg\n"
        "from lightmod import tiny\n"
        "from helpers import greet\n"
        "from heavypkg import extras\n"
        "\n"
        "async def handle(request, env):\n"
        "    return await heavypkg.compute(request)\n"
    )
    (app / "helpers.py").write_text("def greet(name):\n    return f'hi {name}'\n")

    heavy = site_packages / "heavypkg"
    heavy.mkdir()
    (heavy / "__init__.py").write_text(
        "from .core import VALUE\n"
        "from . import core\n"
        "\n"
        "__all__ = ['compute', 'Model', 'VALUE']\n"
        "\n"
        "def compute(x):\n"
        "    return x\n"
        "\n"
        "class Model:\n"
        "    pass\n"
    )
    (heavy / "core.py").write_text("import heavypkg\n" + HEAVY_CORE)
    (heavy / "extras").mkdir()
    (heavy / "extras" / "__init__.py").write_text("")
    (heavy / "extras" / "plots.py").write_text("def plot():\n    return None\n")

    (site_packages / "lightmod.py").write_text("def tiny():\n    return 1\n")
    (site_packages / "unusedpkg").mkdir()
    (site_packages / "unusedpkg" / "__init__.py").write_text("X = 1\n")
    (site_packages / "heavypkg-1.0.dist-info").mkdir()
    (site_packages / "heavypkg-1.0.dist-info" / "METADATA").write_text("Name: heavypkg\n")

    return types.SimpleNamespace(
        app=app,
        entry=app / "main.py",
        site_packages=site_packages,
    )


@pytest.fixture
def fake_deps():
    return [
        PackageSizeReport(name="sql-formatter", bytes=600_000, percentage=50),
        PackageSizeReport(name="@faker-js/faker", bytes=4_000_000, percentage=40),
        PackageSizeReport(name="tiny-lib", bytes=1_000, percentage=1),
    ]


# A stand-in for a heavy third-party package served by a sibling

class Counter:
    def __init__(self, start=0):
        self.value = start

    def increment(self, by=1):
        self.value += by
        return self.value

    async def increment_later(self, by=1):
        await asyncio.sleep(0)
        return self.increment(by)

    def snapshot(self):
        return {"value": self.value}


class Person:
    def first_name(self):
        return "Ada"


class Faker:
    def __init__(self, seed=0):
        self.seed = seed
        self.person = Person()

    def name(self):
        return f"name-{self.seed}"


def add(a, b):
    return a + b


async def fetch(key):
    await asyncio.sleep(0)
    return {"key": key, "found": True}


def call_with(fn, *args, **kwargs):
    return fn(*args, **kwargs)


def describe(obj):
    return type(obj).__name__


def total(counters):
    return sum(counter.value for counter in counters)


def make_pair():
    return [Counter(1), Counter(2)]


def fail(message):
    raise ValueError(message)


def make_adder(n):
    def adder(x):
        return x + n
    return adder


def make_sdk_module(name="fakesdk", default=None):
    module = types.ModuleType(name)
    for obj in (Counter, Person, Faker, add, fetch, call_with, describe, total, make_pair, make_adder, fail):
        setattr(module, obj.__name__, obj)
    module.VERSION = "1.2.3"
    module.config = {"mode": "strict", "nested": {"level": 2}}
    module.nothing = None
    if default is not None:
        module.default = default
    return module


@pytest.fixture
def sdk_module():
    return make_sdk_module()


@pytest.fixture
def sdk_factory():
    return make_sdk_module


# Markers for test categorization

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "grpc: Tests that start a local gRPC server"
    )
    config.addinivalue_line(
        "markers", "integration: Tests exercising several units end to end"
    )



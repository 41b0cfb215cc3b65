import importlib
import logging
import pathlib


def test_package_importable():
    """Ensure the odflows package can be imported without side-effects."""
    pkg = importlib.import_module("odflows")
    assert hasattr(pkg, "logger")
    assert isinstance(pkg.logger, logging.Logger)


def test_project_paths_are_paths():
    pkg = importlib.import_module("odflows")
    for p in (pkg.PROJECT_ROOT, pkg.INPUT_DIR, pkg.OUTPUT_DIR):
        assert isinstance(p, pathlib.Path)


def test_public_api():
    pkg = importlib.import_module("odflows")
    for name in pkg.__all__:
        assert hasattr(pkg, name), name

"""Loading of test modules.

A test module is a plain Python file whose top-level code registers test
calls. The registry is injected into the module's globals as ``check``
before the file is executed::

    from mypackage import add

    check(add, 1, 2).equals(3)
"""

import hashlib
import importlib.machinery
import importlib.util
import logging
import os
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable, Union

from testnow.core.paths import FileItem, as_pathname
from testnow.core.registry import TestCallRegistry
from testnow.errors import ImportFailure

log = logging.getLogger("testnow.loader")

REGISTRY_GLOBAL = "check"


def module_name_for(pathname: str) -> str:
    """Build a unique, importable module name for a test file."""
    digest = hashlib.sha1(pathname.encode("utf-8")).hexdigest()[:12]
    stem = "".join(c if c.isalnum() else "_" for c in Path(pathname).stem)
    return f"testnow_module_{stem}_{digest}"


def load_test_module(
    file: Union[FileItem, str, Path],
    registry: TestCallRegistry,
    search_paths: Iterable[str] = (),
) -> ModuleType:
    """Execute the top-level code of a test file.

    Calls registered by the file are added to ``registry``. If the file
    raises, the calls it registered are dropped.

    While the file runs, its folder and ``search_paths`` are put in front
    of ``sys.path`` so it can import its sibling modules and the project
    under test. The module is not kept in ``sys.modules``.

    Raises:
        ImportFailure: If the file cannot be loaded or its code raises
    """
    pathname = as_pathname(file) if isinstance(file, FileItem) else str(file)
    name = module_name_for(pathname)

    loader = importlib.machinery.SourceFileLoader(name, pathname)
    spec = importlib.util.spec_from_file_location(name, pathname, loader=loader)
    if spec is None or spec.loader is None:
        raise ImportFailure(pathname, f"Cannot load {pathname} as a Python module")

    module = importlib.util.module_from_spec(spec)
    setattr(module, REGISTRY_GLOBAL, registry)

    added_paths = [os.path.dirname(pathname)]
    for path in map(os.path.normpath, search_paths):
        if path not in added_paths:
            added_paths.append(path)

    mark = len(registry)
    sys.path[:0] = added_paths
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        registry.truncate(mark)
        raise ImportFailure(pathname) from e
    finally:
        sys.modules.pop(name, None)
        for path in added_paths:
            try:
                sys.path.remove(path)
            except ValueError:
                pass

    log.debug("Loaded %s (%d test calls)", pathname, len(registry) - mark)
    return module

from __future__ import annotations

import importlib
import pkgutil
from functools import lru_cache
from types import ModuleType
from typing import Dict, Iterable, List

from ._base import ConceptMeta

_PKG = __name__.rsplit(".", 1)[0]  # hdstats.analytics.concepts


def iter_concept_modules() -> Iterable[str]:
    pkg = importlib.import_module(_PKG)
    for m in pkgutil.walk_packages(pkg.__path__, prefix=_PKG + "."):
        if m.ispkg:
            continue
        leaf = m.name.rsplit(".", 1)[-1]
        if leaf.startswith("_") or leaf == "registry":
            continue
        yield m.name


@lru_cache(maxsize=1)
def concept_modules() -> Dict[str, ModuleType]:
    mods: Dict[str, ModuleType] = {}
    for modname in iter_concept_modules():
        mod = importlib.import_module(modname)
        meta = getattr(mod, "META", None)
        if meta is not None:
            mods[meta.slug] = mod
    return mods


def load_all_meta() -> List[ConceptMeta]:
    metas = [m.META for m in concept_modules().values()]
    metas.sort(key=lambda m: (m.topic_slug, m.slug))
    return metas

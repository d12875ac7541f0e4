# -*- coding: utf-8 -*-
"""
訪問トラッカーのセッション（索引・訪問ストア・表示中スコープをまとめて保持）

- build_index で索引を構築してキャッシュ（完了までは前回の索引のまま）
- aggregator は常に最新の索引と訪問集合から計算する
- 表示中スコープ: None なら全国、県名なら県
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .core import (
    CODE_PROPERTY_KEYS,
    NAME_PROPERTY_KEYS,
    NATIONAL_LABEL,
    PREF_CODE_BY_NAME,
)
from .index_builder import MunicipalityIndex, build_index
from .loader import default_fetcher, extract_code, extract_name, load_features
from .progress import ProgressAggregator, ProgressSnapshot, format_progress_label
from .store import VisitedStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MunicipalityEntry:
    code: str
    name: str
    visited: bool


class VisitSession:
    def __init__(
        self,
        store: Optional[VisitedStore] = None,
        fetcher: Any = None,
        registry: Mapping[str, str] = PREF_CODE_BY_NAME,
        code_keys: Sequence[str] = CODE_PROPERTY_KEYS,
        name_keys: Sequence[str] = NAME_PROPERTY_KEYS,
    ):
        self.store = store if store is not None else VisitedStore()
        self.fetcher = fetcher if fetcher is not None else default_fetcher()
        self.registry = registry
        self.code_keys = code_keys
        self.name_keys = name_keys
        self.index: Optional[MunicipalityIndex] = None
        self.current_pref: Optional[str] = None

    @property
    def index_ready(self) -> bool:
        return self.index is not None

    async def build_index(self) -> MunicipalityIndex:
        async with self.fetcher.open() as fetcher:
            index = await build_index(fetcher.fetch, registry=self.registry, code_keys=self.code_keys)
        self.index = index
        return index

    @property
    def aggregator(self) -> ProgressAggregator:
        return ProgressAggregator(self.index or {}, self.store, registry=self.registry)

    def resolve(self, pref_name: Optional[str]) -> Optional[str]:
        # 登録済みの県名なら前後空白を除いた名前、そうでなければ None
        if not pref_name:
            return None
        name = str(pref_name).strip()
        return name if name in self.registry else None

    def select_prefecture(self, pref_name: Optional[str]) -> Optional[str]:
        name = self.resolve(pref_name)
        if name is None:
            logger.info("prefecture not resolvable: %r", pref_name)
            return None
        self.current_pref = name
        return name

    def select_national(self) -> None:
        self.current_pref = None

    def current_progress(self) -> Tuple[str, ProgressSnapshot]:
        # 県表示中で、その県の市区町村コードが分かっていれば県、それ以外は全国
        agg = self.aggregator
        if self.current_pref and (self.index or {}).get(self.current_pref):
            return self.current_pref, agg.prefecture_progress(self.current_pref)
        return NATIONAL_LABEL, agg.national_progress()

    def current_label(self) -> str:
        scope, snap = self.current_progress()
        return format_progress_label(scope, snap)

    async def municipalities(self, pref_name: str) -> Optional[List[MunicipalityEntry]]:
        """県の市区町村一覧。県名が解決できなければ None。取得失敗は例外のまま返す。"""
        name = self.resolve(pref_name)
        if name is None:
            return None
        async with self.fetcher.open() as fetcher:
            features = await load_features(fetcher.fetch, self.registry[name])
        out: List[MunicipalityEntry] = []
        seen = set()
        for f in features:
            code = extract_code(f, self.code_keys)
            if code and code in seen:
                continue
            seen.add(code)
            out.append(MunicipalityEntry(code=code, name=extract_name(f, self.name_keys), visited=self.store.contains(code)))
        return out

    def toggle(self, code) -> bool:
        return self.store.toggle(code)

    def contains(self, code) -> bool:
        return self.store.contains(code)

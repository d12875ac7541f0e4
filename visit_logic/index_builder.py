# -*- coding: utf-8 -*-
"""
県 → 市区町村コードSet の索引構築

47県ぶんの取得を同時に開始し、全件の完了を待ってから索引を返す。
読めない県があっても全体は止めず、その県だけ空集合にする。
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, FrozenSet, Mapping, Sequence, Tuple

from .core import CODE_PROPERTY_KEYS, PREF_CODE_BY_NAME
from .loader import FetchFunc, extract_code, load_features

logger = logging.getLogger(__name__)

MunicipalityIndex = Dict[str, FrozenSet[str]]


async def _codes_for_pref(
    fetch: FetchFunc,
    pref_name: str,
    pref_code: str,
    code_keys: Sequence[str],
) -> Tuple[str, FrozenSet[str]]:
    try:
        features = await load_features(fetch, pref_code)
        codes = frozenset(c for c in (extract_code(f, code_keys) for f in features) if c)
    except Exception as e:
        logger.warning("municipality dataset unavailable: %s (%s): %r", pref_name, pref_code, e)
        return pref_name, frozenset()
    return pref_name, codes


async def build_index(
    fetch: FetchFunc,
    registry: Mapping[str, str] = PREF_CODE_BY_NAME,
    code_keys: Sequence[str] = CODE_PROPERTY_KEYS,
) -> MunicipalityIndex:
    """
    registry（県名 → 都道府県コード）の全県について fetch を同時実行し、
    {県名: 市区町村コードのfrozenset} を返す。戻り値は必ず registry と同数のエントリを持つ。
    """
    started = time.time()
    results = await asyncio.gather(
        *(_codes_for_pref(fetch, name, code, code_keys) for name, code in registry.items())
    )
    index: MunicipalityIndex = dict(results)
    empty = [name for name, codes in index.items() if not codes]
    logger.info(
        "municipality index built: prefs=%d codes=%d empty=%d elapsed=%.2fs",
        len(index),
        sum(len(c) for c in index.values()),
        len(empty),
        time.time() - started,
    )
    return index

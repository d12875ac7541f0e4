# -*- coding: utf-8 -*-
"""
訪問済み市区町村コードの保持と永続化

- 保存形式は市区町村コードの JSON 配列（追加順）
- 読み込みのたびに正規化・空除去・重複除去する（外部から壊された保存内容にも耐える）
- toggle のたびに全集合を同期的に書き戻す
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, FrozenSet, List, Optional, Protocol

from .core import VISITED_PATH, normalize_code

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """訪問リストの保存先。load_raw は未保存なら None を返す。"""

    def load_raw(self) -> Optional[Any]:
        ...

    def save_raw(self, values: List[str]) -> None:
        ...


class JsonFileStorage:
    def __init__(self, path: str = VISITED_PATH):
        self.path = path

    def load_raw(self) -> Optional[Any]:
        if not self.path or not os.path.exists(self.path):
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("visited list unreadable, starting empty: %s (%r)", self.path, e)
            return None

    def save_raw(self, values: List[str]) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(values, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)


class MemoryStorage:
    def __init__(self, raw: Optional[Any] = None):
        self.raw = raw
        self.writes = 0

    def load_raw(self) -> Optional[Any]:
        return self.raw

    def save_raw(self, values: List[str]) -> None:
        self.raw = list(values)
        self.writes += 1


def normalize_visited(raw: Any) -> List[str]:
    # 保存内容 → 正規化済みコード（順序保持・重複なし）
    if not isinstance(raw, (list, tuple)):
        if raw is not None:
            logger.warning("visited list is not a list, ignored: %s", type(raw).__name__)
        return []
    out: Dict[str, None] = {}
    for v in raw:
        code = normalize_code(v)
        if code:
            out[code] = None
    return list(out)


class VisitedStore:
    """訪問済みコード集合の唯一の持ち主。"""

    def __init__(self, storage: Optional[StorageBackend] = None):
        self.storage: StorageBackend = storage if storage is not None else JsonFileStorage()
        # dict を順序付き集合として使う
        self._codes: Dict[str, None] = {}
        self.load()

    def load(self) -> FrozenSet[str]:
        self._codes = dict.fromkeys(normalize_visited(self.storage.load_raw()))
        return frozenset(self._codes)

    def toggle(self, code) -> bool:
        """
        あれば外し、なければ加えて保存する。戻り値は操作後に訪問済みかどうか。
        保存に失敗したら元の状態に戻して例外をそのまま送出する。
        """
        c = normalize_code(code)
        if not c:
            return False
        before = dict(self._codes)
        if c in self._codes:
            del self._codes[c]
            visited = False
        else:
            self._codes[c] = None
            visited = True
        try:
            self.storage.save_raw(list(self._codes))
        except Exception:
            # 保存できなかった変更はメモリにも残さない
            self._codes = before
            raise
        return visited

    def contains(self, code) -> bool:
        c = normalize_code(code)
        return bool(c) and c in self._codes

    def size(self) -> int:
        return len(self._codes)

    def codes(self) -> FrozenSet[str]:
        return frozenset(self._codes)

    def ordered(self) -> List[str]:
        return list(self._codes)

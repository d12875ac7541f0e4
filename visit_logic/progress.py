# -*- coding: utf-8 -*-
"""
訪問率の集計と出力

- 全国: 分母は固定値 1741、分子は訪問済みコード数（県での絞り込みなし）
- 県: 分母は索引にある市区町村コード数、分子はそのうち訪問済みの数
- 県別一覧は都道府県コード順（01→47）
- 県別一覧を DataFrame / CSV / Excel（訪問率で色付け）に出力する
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Mapping

import pandas as pd

from .core import NATIONAL_MUNICIPALITIES, PREF_CODE_BY_NAME, color_for, to_hex
from .store import VisitedStore

PROGRESS_COLUMNS = ["都道府県コード", "都道府県名", "訪問数", "市区町村数", "達成率(%)"]


@dataclass(frozen=True)
class ProgressSnapshot:
    hit: int
    total: int
    ratio: float

    @property
    def pct(self) -> float:
        return self.ratio * 100.0


@dataclass(frozen=True)
class PrefectureProgressRow:
    pref_name: str
    pref_code: str
    hit: int
    total: int
    pct: float

    @property
    def ratio(self) -> float:
        return self.pct / 100.0


EMPTY_SNAPSHOT = ProgressSnapshot(hit=0, total=0, ratio=0.0)


class ProgressAggregator:
    """索引と訪問集合から毎回計算し直す。訪問集合は読むだけ。"""

    def __init__(
        self,
        index: Mapping[str, FrozenSet[str]],
        store: VisitedStore,
        registry: Mapping[str, str] = PREF_CODE_BY_NAME,
        national_total: int = NATIONAL_MUNICIPALITIES,
    ):
        self.index = index
        self.store = store
        self.registry = registry
        self.national_total = national_total

    def national_progress(self) -> ProgressSnapshot:
        hit = self.store.size()
        total = self.national_total
        return ProgressSnapshot(hit=hit, total=total, ratio=hit / total if total > 0 else 0.0)

    def prefecture_progress(self, pref_name: str) -> ProgressSnapshot:
        city_set = self.index.get(pref_name)
        if not city_set:
            return EMPTY_SNAPSHOT
        visited = self.store.codes()
        total = len(city_set)
        hit = len(city_set & visited)
        return ProgressSnapshot(hit=hit, total=total, ratio=hit / total)

    def prefecture_visited_ratio(self, pref_name: str) -> float:
        # 塗り分け用。データなしと未訪問はどちらも 0
        return self.prefecture_progress(pref_name).ratio

    def all_prefecture_progress(self) -> List[PrefectureProgressRow]:
        rows = []
        for pref_name, pref_code in self.registry.items():
            snap = self.prefecture_progress(pref_name)
            rows.append(
                PrefectureProgressRow(
                    pref_name=pref_name,
                    pref_code=pref_code,
                    hit=snap.hit,
                    total=snap.total,
                    pct=snap.pct,
                )
            )
        # 都道府県コード順（01→47）
        rows.sort(key=lambda r: int(r.pref_code))
        return rows

    def ratio_by_prefecture(self) -> Dict[str, float]:
        return {name: self.prefecture_visited_ratio(name) for name in self.registry}


def format_progress_label(scope_name: str, snap: ProgressSnapshot) -> str:
    # 例: "全国\n12/1741（0.7%）"
    return f"{scope_name}\n{snap.hit}/{snap.total}（{snap.pct:.1f}%）"


def progress_frame(rows: List[PrefectureProgressRow]) -> pd.DataFrame:
    return pd.DataFrame(
        [[r.pref_code, r.pref_name, r.hit, r.total, round(r.pct, 1)] for r in rows],
        columns=PROGRESS_COLUMNS,
    )


def build_progress_csv(rows: List[PrefectureProgressRow]) -> io.BytesIO:
    buf = io.BytesIO()
    progress_frame(rows).to_csv(buf, index=False, encoding="utf-8-sig")
    buf.seek(0)
    return buf


def build_progress_excel(rows: List[PrefectureProgressRow], sheet_name: str = "progress") -> io.BytesIO:
    """Excel出力をBytesIOに作成。各行を訪問率のグラデーション色で塗る。"""
    from openpyxl.styles import PatternFill

    df = progress_frame(rows)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        ws = writer.book[sheet_name]
        for i, r in enumerate(rows):
            color = to_hex(color_for(r.ratio))
            fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            for col_num in range(1, len(PROGRESS_COLUMNS) + 1):
                ws.cell(row=i + 2, column=col_num).fill = fill
    buf.seek(0)
    return buf

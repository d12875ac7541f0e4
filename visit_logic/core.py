# -*- coding: utf-8 -*-
"""
Core visit-tracking logic
- 都道府県名 ⇔ 都道府県コードの対応表
- 市区町村コードの正規化
- 訪問率 → 塗り色のグラデーション
"""
from __future__ import annotations

import math
import numbers
import os
from typing import Dict, Optional, Tuple

# 定数定義
BASE_DIR = os.path.dirname(__file__)
REPO_DIR = os.path.abspath(os.path.join(BASE_DIR, ".."))
GEOJSON_DIR = os.environ.get("VISIT_GEOJSON_DIR", os.path.join(REPO_DIR, "geojson", "municipality"))
GEOJSON_BASE_URL = os.environ.get("VISIT_GEOJSON_BASE_URL", "").rstrip("/")
VISITED_PATH = os.environ.get("VISIT_VISITED_PATH", os.path.join(REPO_DIR, "data", "visited_cities.json"))
FETCH_TIMEOUT_SEC = float(os.environ.get("VISIT_FETCH_TIMEOUT_SEC", "20"))

# 全国（トップページ）進捗の分母（固定値）
NATIONAL_MUNICIPALITIES = 1741
NATIONAL_LABEL = "全国"


def _keys_from_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.environ.get(name, "")
    keys = tuple(k.strip() for k in raw.split(",") if k.strip())
    return keys or default


# feature.properties から市区町村コード/名称を探す候補キー（先頭優先）
CODE_PROPERTY_KEYS = _keys_from_env("VISIT_CODE_KEYS", ("N03_007", "code", "id"))
NAME_PROPERTY_KEYS = _keys_from_env("VISIT_NAME_KEYS", ("N03_004", "N03_003", "city", "name"))
UNKNOWN_NAME = "不明"

# 薄いオレンジ → 濃いオレンジ
GRADIENT_LOW = (255, 242, 204)
GRADIENT_HIGH = (255, 106, 0)

# 県名 → 都道府県コード（01〜47）
PREF_CODE_BY_NAME: Dict[str, str] = {
    "北海道": "01",
    "青森県": "02", "岩手県": "03", "宮城県": "04", "秋田県": "05", "山形県": "06", "福島県": "07",
    "茨城県": "08", "栃木県": "09", "群馬県": "10", "埼玉県": "11", "千葉県": "12", "東京都": "13", "神奈川県": "14",
    "新潟県": "15", "富山県": "16", "石川県": "17", "福井県": "18", "山梨県": "19", "長野県": "20", "岐阜県": "21",
    "静岡県": "22", "愛知県": "23",
    "三重県": "24", "滋賀県": "25", "京都府": "26", "大阪府": "27", "兵庫県": "28", "奈良県": "29", "和歌山県": "30",
    "鳥取県": "31", "島根県": "32", "岡山県": "33", "広島県": "34", "山口県": "35",
    "徳島県": "36", "香川県": "37", "愛媛県": "38", "高知県": "39",
    "福岡県": "40", "佐賀県": "41", "長崎県": "42", "熊本県": "43", "大分県": "44", "宮崎県": "45", "鹿児島県": "46",
    "沖縄県": "47",
}
PREF_NAME_BY_CODE: Dict[str, str] = {code: name for name, code in PREF_CODE_BY_NAME.items()}

RGB = Tuple[int, int, int]


# ユーティリティ
def normalize_code(raw) -> str:
    """
    市区町村コードを正規化する（文字列化＋前後空白除去）。
    None / NaN / コードとして解釈できない型は "" を返す。"" は無効コードの番兵。
    """
    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, float):
        if math.isnan(raw) or math.isinf(raw):
            return ""
        # 13101.0 のような数値は整数表記に揃える
        if raw.is_integer():
            raw = int(raw)
    if not isinstance(raw, (str, numbers.Real)):
        return ""
    return str(raw).strip()


def pref_code_of(pref_name: Optional[str]) -> Optional[str]:
    # 県名 → コード（解決できなければ None）
    if not pref_name:
        return None
    return PREF_CODE_BY_NAME.get(str(pref_name).strip())


def pref_name_of(pref_code) -> Optional[str]:
    code = normalize_code(pref_code)
    if code.isdigit():
        code = code.zfill(2)
    return PREF_NAME_BY_CODE.get(code)


def geojson_path_for(pref_name: Optional[str], base_dir: str = GEOJSON_DIR) -> Optional[str]:
    # 県別市区町村GeoJSONのパス。コード解決できない県名は None
    code = pref_code_of(pref_name)
    if not code:
        return None
    return os.path.join(base_dir, f"{code}.json")


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _clamp01(x: float) -> float:
    if x is None or math.isnan(x):
        return 0.0
    return max(0.0, min(1.0, x))


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def color_for(ratio: float) -> RGB:
    """t=0(薄) → t=1(濃) のオレンジ。範囲外は両端に飽和させる。"""
    t = _clamp01(float(ratio) if ratio is not None else 0.0)
    return tuple(_round_half_up(_lerp(lo, hi, t)) for lo, hi in zip(GRADIENT_LOW, GRADIENT_HIGH))


def to_css_rgb(rgb: RGB) -> str:
    r, g, b = rgb
    return f"rgb({r}, {g}, {b})"


def to_hex(rgb: RGB) -> str:
    # openpyxl の PatternFill 用（先頭 # なし）
    return "".join(f"{c:02X}" for c in rgb)

"""
全国の市区町村境界GeoJSON（国土数値情報 N03 形式）を都道府県別ファイルに分割するスクリプト。
仕様:
- 入力: --src にURLまたはローカルパス（URLは requests で取得）
- 都道府県コードは市区町村コード（N03_007 など）の先頭2桁から判定
- コードが取れない feature は N03_001（都道府県名）から補完し、それも無ければ捨てる
- 47県すべてのファイルを出力する（feature が無い県は空の FeatureCollection）
出力: geojson/municipality/{01..47}.json
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import requests

BASE_DIR = os.path.dirname(__file__)
if os.path.abspath(os.path.join(BASE_DIR, "..")) not in sys.path:
    sys.path.insert(0, os.path.abspath(os.path.join(BASE_DIR, "..")))

from visit_logic.core import GEOJSON_DIR, PREF_NAME_BY_CODE, pref_code_of  # noqa: E402
from visit_logic.loader import extract_code, normalize_to_feature_collection  # noqa: E402

TIMEOUT = 60


def load_source(src: str) -> Dict[str, Any]:
    if src.startswith(("http://", "https://")):
        resp = requests.get(src, timeout=TIMEOUT)
        resp.raise_for_status()
        return resp.json()
    return json.loads(Path(src).read_text(encoding="utf-8"))


def pref_code_for_feature(feature: Dict[str, Any]) -> str:
    code = extract_code(feature)
    if len(code) >= 2 and code[:2] in PREF_NAME_BY_CODE:
        return code[:2]
    # 所属未定地などはコードが無いので県名から
    props = feature.get("properties") or {}
    return pref_code_of(props.get("N03_001")) or ""


def split_by_prefecture(gj: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    out: Dict[str, List[Dict[str, Any]]] = {code: [] for code in PREF_NAME_BY_CODE}
    for f in normalize_to_feature_collection(gj)["features"]:
        code = pref_code_for_feature(f)
        if code:
            out[code].append(f)
    return out


def write_prefecture_files(groups: Dict[str, List[Dict[str, Any]]], out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for code in sorted(groups):
        fc = {"type": "FeatureCollection", "features": groups[code]}
        (out_dir / f"{code}.json").write_text(json.dumps(fc, ensure_ascii=False), encoding="utf-8")
        print(f"{code} {PREF_NAME_BY_CODE[code]}: {len(groups[code])} features")


def main():
    parser = argparse.ArgumentParser(description="全国の市区町村GeoJSONを都道府県別に分割する")
    parser.add_argument("--src", required=True, help="全国市区町村GeoJSONのURLまたはパス")
    parser.add_argument("--out", type=Path, default=Path(GEOJSON_DIR), help="出力ディレクトリ")
    args = parser.parse_args()

    groups = split_by_prefecture(load_source(args.src))
    write_prefecture_files(groups, args.out)
    print(f"Saved: {args.out}")


if __name__ == "__main__":
    main()

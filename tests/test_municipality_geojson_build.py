"""全国GeoJSON → 都道府県別ファイル分割スクリプトのテスト。"""

import json

from mst_logic.municipality_geojson_build import (
    load_source,
    pref_code_for_feature,
    split_by_prefecture,
    write_prefecture_files,
)


def _feature(**props):
    return {"type": "Feature", "properties": props, "geometry": None}


NATIONAL = {
    "type": "FeatureCollection",
    "features": [
        _feature(N03_001="北海道", N03_004="札幌市中央区", N03_007="01101"),
        _feature(N03_001="鳥取県", N03_004="鳥取市", N03_007="31201"),
        _feature(N03_001="鳥取県", N03_004="米子市", N03_007="31202"),
        _feature(N03_001="北海道", N03_004="所属未定地", N03_007=None),
        _feature(N03_001="どこでもない", N03_007=None),
    ],
}


class TestSplit:
    def test_pref_code_for_feature(self):
        assert pref_code_for_feature(NATIONAL["features"][1]) == "31"
        assert pref_code_for_feature(NATIONAL["features"][3]) == "01"
        assert pref_code_for_feature(NATIONAL["features"][4]) == ""

    def test_split_covers_all_prefectures(self):
        groups = split_by_prefecture(NATIONAL)
        assert len(groups) == 47
        assert len(groups["01"]) == 2
        assert len(groups["31"]) == 2
        assert groups["13"] == []

    def test_write_and_reload(self, tmp_path):
        src = tmp_path / "japan.json"
        src.write_text(json.dumps(NATIONAL, ensure_ascii=False), encoding="utf-8")
        out_dir = tmp_path / "municipality"
        write_prefecture_files(split_by_prefecture(load_source(str(src))), out_dir)
        assert len(list(out_dir.glob("*.json"))) == 47
        tottori = json.loads((out_dir / "31.json").read_text(encoding="utf-8"))
        assert tottori["type"] == "FeatureCollection"
        assert [f["properties"]["N03_007"] for f in tottori["features"]] == ["31201", "31202"]

"""HTTP API のテスト。"""

import io

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from visit_logic.session import VisitSession
from visit_logic.store import MemoryStorage, VisitedStore

from .test_session import TOTTORI, FakeFetcher


@pytest.fixture
def client():
    session = VisitSession(store=VisitedStore(MemoryStorage(["31201"])), fetcher=FakeFetcher({"31": TOTTORI}))
    with TestClient(create_app(session)) as c:
        yield c


class TestProgressEndpoints:
    def test_national(self, client):
        body = client.get("/progress").json()
        assert body["scope"] == "national"
        assert (body["hit"], body["total"]) == (1, 1741)
        assert body["pct"] == 0.1

    def test_prefectures_sorted(self, client):
        rows = client.get("/prefectures").json()
        assert len(rows) == 47
        assert [r["pref_code"] for r in rows] == [f"{i:02d}" for i in range(1, 48)]
        tottori = rows[30]
        assert tottori["pref_name"] == "鳥取県"
        assert (tottori["hit"], tottori["total"], tottori["pct"]) == (1, 2, 50.0)
        assert tottori["color"] == "rgb(255, 174, 102)"
        assert rows[0]["color"] == "rgb(255, 242, 204)"

    def test_prefecture(self, client):
        body = client.get("/prefectures/鳥取県").json()
        assert body == {
            "scope": "鳥取県",
            "pref_code": "31",
            "hit": 1,
            "total": 2,
            "ratio": 0.5,
            "pct": 50.0,
            "color": "rgb(255, 174, 102)",
        }

    def test_unresolvable_prefecture(self, client):
        res = client.get("/prefectures/アトランティス県")
        assert res.status_code == 404
        assert "コード解決できません" in res.json()["detail"]


class TestMunicipalities:
    def test_list(self, client):
        body = client.get("/prefectures/鳥取県/municipalities").json()
        assert {"code": "31201", "name": "鳥取市", "visited": True} in body
        assert {"code": "31202", "name": "米子市", "visited": False} in body

    def test_fetch_failure_is_502(self, client):
        assert client.get("/prefectures/東京都/municipalities").status_code == 502

    def test_unresolvable_is_404(self, client):
        assert client.get("/prefectures/不明/municipalities").status_code == 404


class TestVisits:
    def test_toggle_roundtrip(self, client):
        assert client.get("/visits/31202").json()["visited"] is False
        assert client.post("/visits/31202/toggle").json() == {"code": "31202", "visited": True}
        assert client.get("/visits").json() == {"count": 2, "codes": ["31201", "31202"]}
        assert client.get("/prefectures/鳥取県").json()["ratio"] == 1.0
        assert client.post("/visits/31202/toggle").json()["visited"] is False
        assert client.get("/progress").json()["hit"] == 1

    def test_blank_code_is_noop(self, client):
        assert client.post("/visits/%20/toggle").json()["visited"] is False
        assert client.get("/visits").json()["count"] == 1

    def test_response_code_is_normalized(self, client):
        """前後に空白のあるコードでも正規化したコードを返す"""
        assert client.post("/visits/%2031202%20/toggle").json() == {"code": "31202", "visited": True}
        assert client.get("/visits/%2031202%20").json() == {"code": "31202", "visited": True}
        assert client.get("/visits").json()["codes"] == ["31201", "31202"]


class TestColorAndExport:
    @pytest.mark.parametrize(
        "ratio, css",
        [(0, "rgb(255, 242, 204)"), (1, "rgb(255, 106, 0)"), (-3, "rgb(255, 242, 204)"), (7, "rgb(255, 106, 0)")],
    )
    def test_color(self, client, ratio, css):
        assert client.get("/color", params={"ratio": ratio}).json()["css"] == css

    def test_rebuild(self, client):
        assert client.post("/index/rebuild").json() == {"prefectures": 47, "codes": 2}

    def test_export_csv(self, client):
        res = client.get("/progress/export", params={"fmt": "csv"})
        assert res.status_code == 200
        df = pd.read_csv(io.BytesIO(res.content), dtype=str, encoding="utf-8-sig")
        assert len(df) == 47

    def test_export_xlsx(self, client):
        res = client.get("/progress/export", params={"fmt": "xlsx"})
        assert res.status_code == 200
        assert len(pd.read_excel(io.BytesIO(res.content))) == 47

    def test_export_bad_format(self, client):
        assert client.get("/progress/export", params={"fmt": "pdf"}).status_code == 422

# -*- coding: utf-8 -*-
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse

from visit_logic.core import color_for, normalize_code, to_css_rgb
from visit_logic.progress import ProgressSnapshot, build_progress_csv, build_progress_excel
from visit_logic.session import VisitSession


def _snapshot_body(snap: ProgressSnapshot) -> dict:
    rgb = color_for(snap.ratio)
    return {
        "hit": snap.hit,
        "total": snap.total,
        "ratio": snap.ratio,
        "pct": round(snap.pct, 1),
        "color": to_css_rgb(rgb),
    }


def create_app(session: Optional[VisitSession] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.session is None:
            app.state.session = VisitSession()
        # 県別コードマップを先に構築（全国のグラデ塗り、県別リストに必要）
        if not app.state.session.index_ready:
            await app.state.session.build_index()
        yield

    app = FastAPI(title="Municipality Visit Tracker API", lifespan=lifespan)
    app.state.session = session

    def _session() -> VisitSession:
        return app.state.session

    def _resolve_or_404(name: str) -> str:
        pref = _session().resolve(name)
        if pref is None:
            raise HTTPException(status_code=404, detail=f"{name} はコード解決できません")
        return pref

    @app.get("/progress")
    def national_progress():
        return {"scope": "national", **_snapshot_body(_session().aggregator.national_progress())}

    @app.get("/prefectures")
    def all_prefecture_progress():
        rows = _session().aggregator.all_prefecture_progress()
        return [
            {
                "pref_name": r.pref_name,
                "pref_code": r.pref_code,
                "hit": r.hit,
                "total": r.total,
                "pct": round(r.pct, 1),
                "color": to_css_rgb(color_for(r.ratio)),
            }
            for r in rows
        ]

    @app.get("/prefectures/{name}")
    def prefecture_progress(name: str):
        pref = _resolve_or_404(name)
        snap = _session().aggregator.prefecture_progress(pref)
        return {"scope": pref, "pref_code": _session().registry[pref], **_snapshot_body(snap)}

    @app.get("/prefectures/{name}/municipalities")
    async def municipalities(name: str):
        pref = _resolve_or_404(name)
        try:
            entries = await _session().municipalities(pref)
        except Exception as e:
            raise HTTPException(status_code=502, detail=f"{pref} の市区町村データが読み込めません: {e!r}")
        return [{"code": m.code, "name": m.name, "visited": m.visited} for m in entries]

    @app.get("/visits")
    def visited_codes():
        store = _session().store
        return {"count": store.size(), "codes": store.ordered()}

    @app.get("/visits/{code}")
    def contains(code: str):
        return {"code": normalize_code(code), "visited": _session().contains(code)}

    @app.post("/visits/{code}/toggle")
    def toggle(code: str):
        visited = _session().toggle(code)
        return {"code": normalize_code(code), "visited": visited}

    @app.get("/color")
    def color(ratio: float = Query(..., description="0〜1（範囲外は両端に丸める）")):
        rgb = color_for(ratio)
        return {"rgb": list(rgb), "css": to_css_rgb(rgb)}

    @app.post("/index/rebuild")
    async def rebuild_index():
        index = await _session().build_index()
        return {"prefectures": len(index), "codes": sum(len(c) for c in index.values())}

    @app.get("/progress/export")
    def export_progress(fmt: str = Query("csv", pattern="^(csv|xlsx)$")):
        rows = _session().aggregator.all_prefecture_progress()
        if fmt == "xlsx":
            buf = build_progress_excel(rows)
            media = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        else:
            buf = build_progress_csv(rows)
            media = "text/csv"
        fname = f"prefecture_progress.{fmt}"
        return StreamingResponse(buf, media_type=media, headers={"Content-Disposition": f'attachment; filename="{fname}"'})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=False)

# -*- coding: utf-8 -*-
"""
Municipality Visit Tracker (Streamlit)
- visit_logic を利用し、ブラウザから市区町村の訪問記録と達成率の確認を行う
- 全国／都道府県の表示切替、県別達成率リスト、CSV/Excel ダウンロード
"""

import asyncio
import os
import sys
from datetime import datetime

import pandas as pd
import streamlit as st

BASE_DIR = os.path.dirname(__file__)
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from visit_logic.core import NATIONAL_LABEL, PREF_CODE_BY_NAME, color_for, to_css_rgb  # noqa: E402
from visit_logic.progress import build_progress_csv, build_progress_excel, progress_frame  # noqa: E402
from visit_logic.session import VisitSession  # noqa: E402


def _log(log_box, msg: str):
    # ログ追記
    ts = datetime.now().strftime("%H:%M:%S")
    logs = st.session_state.setdefault("logs", [])
    logs.append(f"[{ts}] {msg}")
    log_box.write("\n".join(logs))


@st.cache_resource
def _get_session() -> VisitSession:
    # 47県ぶん読み込んで索引を作る（再実行のたびに作り直さない）
    session = VisitSession()
    asyncio.run(session.build_index())
    return session


def _style_rows(df: pd.DataFrame):
    def row_style(row):
        fill = to_css_rgb(color_for(row["達成率(%)"] / 100.0))
        return [f"background-color: {fill}"] * len(row)

    return df.style.apply(row_style, axis=1)


def _render_pref_list(session: VisitSession):
    rows = session.aggregator.all_prefecture_progress()
    st.dataframe(_style_rows(progress_frame(rows)), hide_index=True, use_container_width=True)
    col_csv, col_xlsx = st.columns(2)
    with col_csv:
        st.download_button(
            label="県別達成率をダウンロード (CSV)",
            data=build_progress_csv(rows).getvalue(),
            file_name="prefecture_progress.csv",
            mime="text/csv",
        )
    with col_xlsx:
        st.download_button(
            label="県別達成率をダウンロード (Excel)",
            data=build_progress_excel(rows).getvalue(),
            file_name="prefecture_progress.xlsx",
            mime="application/octet-stream",
        )


def _render_municipalities(session: VisitSession, pref_name: str, log_box):
    try:
        entries = asyncio.run(session.municipalities(pref_name))
    except Exception as e:
        st.error(f"{pref_name} の市区町村データが読み込めません: {e}")
        return
    if entries is None:
        st.warning(f"{pref_name} はコード解決できません")
        return
    cols = st.columns(4)
    for i, m in enumerate(entries):
        with cols[i % 4]:
            if not m.code:
                st.checkbox(f"{m.name}（コードなし）", value=False, disabled=True, key=f"nocode_{pref_name}_{i}")
                continue
            checked = st.checkbox(m.name, value=m.visited, key=f"visit_{m.code}")
            if checked != session.contains(m.code):
                visited = session.toggle(m.code)
                if visited:
                    st.toast("ここに行ったことがある！")
                _log(log_box, f"{m.name}({m.code}) → {'訪問済み' if visited else '未訪問'}")


def main():
    st.set_page_config(page_title="Municipality Visit Tracker", layout="wide")
    st.title("Municipality Visit Tracker")
    st.caption("行ったことがある市区町村を記録し、全国・都道府県ごとの達成率を表示するアプリです。")

    st.session_state.setdefault("logs", [])
    with st.spinner("集計中..."):
        session = _get_session()

    options = [NATIONAL_LABEL] + list(PREF_CODE_BY_NAME.keys())
    scope = st.selectbox("表示範囲を選択", options=options, index=0)
    if scope == NATIONAL_LABEL:
        session.select_national()
    elif session.select_prefecture(scope) is None:
        st.warning(f"{scope} はコード解決できません")

    progress_box = st.empty()
    log_box = st.empty()

    if session.current_pref:
        _render_municipalities(session, session.current_pref, log_box)

    scope_name, snap = session.current_progress()
    progress_box.metric(scope_name, f"{snap.hit}/{snap.total}", f"{snap.pct:.1f}%")

    if st.toggle("都道府県別の達成率リストを表示", value=False):
        _render_pref_list(session)

    if st.button("市区町村データを再読込"):
        asyncio.run(session.build_index())
        _log(log_box, "索引を再構築しました")

    if st.session_state["logs"]:
        log_box.write("\n".join(st.session_state["logs"]))


if __name__ == "__main__":
    main()

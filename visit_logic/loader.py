# -*- coding: utf-8 -*-
"""
県別市区町村GeoJSONの取得と正規化

- 取得器は fetch(pref_code) で生の GeoJSON(dict) を返す。失敗時は例外を送出する
- LocalDatasetFetcher: {base_dir}/{code}.json を読む
- HttpDatasetFetcher: {base_url}/{code}.json を aiohttp で取得する
- 取得結果は normalize_to_feature_collection で FeatureCollection に揃える
"""
from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import aiohttp

from .core import (
    CODE_PROPERTY_KEYS,
    FETCH_TIMEOUT_SEC,
    GEOJSON_BASE_URL,
    GEOJSON_DIR,
    NAME_PROPERTY_KEYS,
    UNKNOWN_NAME,
    normalize_code,
)

FetchFunc = Callable[[str], Awaitable[Any]]


def _empty_collection() -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


def normalize_to_feature_collection(gj: Any) -> Dict[str, Any]:
    # FeatureCollection に正規化
    if not gj or not isinstance(gj, dict):
        return _empty_collection()
    features = gj.get("features")
    if gj.get("type") == "FeatureCollection" and isinstance(features, list):
        return gj
    if gj.get("type") == "Feature":
        return {"type": "FeatureCollection", "features": [gj]}
    if isinstance(features, list):
        return {"type": "FeatureCollection", "features": features}
    return _empty_collection()


def _properties(feature: Any) -> Dict[str, Any]:
    if not isinstance(feature, dict):
        return {}
    props = feature.get("properties")
    return props if isinstance(props, dict) else {}


def extract_code(feature: Any, keys: Sequence[str] = CODE_PROPERTY_KEYS) -> str:
    """候補キーを順に試し、最初に得られた非空のコードを返す。なければ ""。"""
    props = _properties(feature)
    for key in keys:
        code = normalize_code(props.get(key))
        if code:
            return code
    return ""


def extract_name(feature: Any, keys: Sequence[str] = NAME_PROPERTY_KEYS) -> str:
    # 市区町村名
    props = _properties(feature)
    for key in keys:
        val = props.get(key)
        if val is not None and str(val).strip():
            return str(val).strip()
    return UNKNOWN_NAME


async def load_features(fetch: FetchFunc, pref_code: str) -> List[Dict[str, Any]]:
    data = await fetch(pref_code)
    return normalize_to_feature_collection(data)["features"]


class LocalDatasetFetcher:
    """ローカルディレクトリの {code}.json を読む取得器。"""

    def __init__(self, base_dir: str = GEOJSON_DIR):
        self.base_dir = base_dir

    def open(self) -> "LocalDatasetFetcher":
        # 状態を持たないのでそのまま使い回す
        return self

    async def __aenter__(self) -> "LocalDatasetFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def path_for(self, pref_code: str) -> str:
        return os.path.join(self.base_dir, f"{pref_code}.json")

    def _read(self, pref_code: str) -> Any:
        with open(self.path_for(pref_code), encoding="utf-8") as f:
            return json.load(f)

    async def fetch(self, pref_code: str) -> Any:
        return await asyncio.to_thread(self._read, pref_code)


class HttpDatasetFetcher:
    """
    {base_url}/{code}.json を取得する取得器。
    async with の間だけ ClientSession を持ち、47県分の同時取得で使い回す。
    セッション等で共有するときは open() で使うたびに別インスタンスを作る。
    """

    def __init__(self, base_url: str = GEOJSON_BASE_URL, timeout: float = FETCH_TIMEOUT_SEC):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def open(self) -> "HttpDatasetFetcher":
        # 同時に走る構築・一覧取得が ClientSession を取り合わないよう複製する
        return HttpDatasetFetcher(self.base_url, self.timeout)

    async def __aenter__(self) -> "HttpDatasetFetcher":
        if self._session is not None:
            raise RuntimeError("HttpDatasetFetcher is already open; use open() for concurrent use")
        self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self

    async def __aexit__(self, *exc) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def url_for(self, pref_code: str) -> str:
        return f"{self.base_url}/{pref_code}.json"

    async def fetch(self, pref_code: str) -> Any:
        if self._session is None:
            raise RuntimeError("HttpDatasetFetcher must be used inside 'async with'")
        async with self._session.get(self.url_for(pref_code)) as resp:
            resp.raise_for_status()
            # GitHub raw などは text/plain で返すため content_type を問わない
            return await resp.json(content_type=None)


def default_fetcher():
    # VISIT_GEOJSON_BASE_URL があれば HTTP、なければローカル
    if GEOJSON_BASE_URL:
        return HttpDatasetFetcher(GEOJSON_BASE_URL)
    return LocalDatasetFetcher(GEOJSON_DIR)

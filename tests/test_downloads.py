import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.modules.downloads import schemas, service

DOWNLOAD_URL = "/api/v1/download"

EPISODE_BODY = {
    "streamUrl": "http://front.test/api/v1/stream?token=abc",
    "title": "Some Show",
    "quality": "1080p",
    "contentId": 1399,
    "mediaType": "show",
    "qualityIndex": 2,
    "seasonNumber": 1,
    "episodeNumber": 3,
}

def test_telegram_link_packs_selection():
    request = schemas.DownloadRequest.model_validate(EPISODE_BODY)

    link = service.build_telegram_link("reeltestbot", request)

    assert link == "https://t.me/reeltestbot?start=file_1399_s_2_1_3&text=Some%20Show%201080p"

def test_movie_link_uses_zero_for_missing_episode():
    request = schemas.DownloadRequest.model_validate(
        {"streamUrl": "http://x", "title": "Film", "quality": "720p", "contentId": "42", "mediaType": "movie"}
    )

    assert "start=file_42_m_0_0_0&" in service.build_telegram_link("bot", request)

def test_direct_link_is_stream_url_without_shortener(client):
    response = client.post(DOWNLOAD_URL, json=EPISODE_BODY)

    assert response.status_code == 200
    assert response.json() == {
        "directLink": EPISODE_BODY["streamUrl"],
        "telegramLink": "https://t.me/reeltestbot?start=file_1399_s_2_1_3&text=Some%20Show%201080p",
    }

@pytest.mark.parametrize("missing", ["streamUrl", "contentId"])
def test_required_fields(client, missing):
    body = {k: v for k, v in EPISODE_BODY.items() if k != missing}

    response = client.post(DOWNLOAD_URL, json=body)

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == missing

def _shortener_app(settings, codec, handler):
    configured = settings.model_copy(
        update={"SHORTENER_API_URL": "http://short.test/api", "SHORTENER_API_KEY": "k"}
    )
    return create_app(configured, transport=httpx.MockTransport(handler), codec=codec)

def test_shortener_replaces_direct_link(settings, codec):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"shortenedUrl": "http://short.test/xyz"})

    with TestClient(_shortener_app(settings, codec, handler)) as client:
        response = client.post(DOWNLOAD_URL, json=EPISODE_BODY)

    assert response.json()["directLink"] == "http://short.test/xyz"
    assert seen[0].url.params["api"] == "k"
    assert seen[0].url.params["url"] == EPISODE_BODY["streamUrl"]

def test_shortener_failure_falls_back_to_stream_url(settings, codec):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with TestClient(_shortener_app(settings, codec, handler)) as client:
        response = client.post(DOWNLOAD_URL, json=EPISODE_BODY)

    assert response.status_code == 200
    assert response.json()["directLink"] == EPISODE_BODY["streamUrl"]

from app.core.config import Settings, _parse_origin_list


def test_cors_origins_accept_comma_or_json_list():
    assert _parse_origin_list("http://a.test, http://b.test ,") == ["http://a.test", "http://b.test"]
    assert _parse_origin_list('["http://a.test", " "]') == ["http://a.test"]

    settings = Settings(cors_origins="http://x.test,http://y.test", log_level=" debug ")
    assert settings.cors_origins == ["http://x.test", "http://y.test"]
    assert settings.log_level == "DEBUG"


def test_oversized_request_body_is_rejected(client):
    response = client.post(
        "/api/schedules/",
        content=b"x" * 1_000_001,
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 413
    assert response.json()["details"]["limit"] == 1_000_000

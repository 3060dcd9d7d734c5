import pytest

from secureweb.middleware_security import (
    CSP_DIRECTIVES,
    PERMISSIONS_POLICY,
    build_csp,
    build_permissions_policy,
    cache_headers,
)


def test_build_csp():
    assert build_csp({"default-src": ["'none'"], "img-src": ["'self'", "data:"]}) == (
        "default-src 'none'; img-src 'self' data:"
    )
    assert build_csp({"default-src": ["'none'"]}, "/csp-report") == (
        "default-src 'none'; report-uri /csp-report"
    )


def test_csp_uses_strict_form_action_and_base_uri():
    assert CSP_DIRECTIVES["form-action"] == ["'none'"]
    assert CSP_DIRECTIVES["base-uri"] == ["'none'"]


def test_build_permissions_policy():
    assert build_permissions_policy(PERMISSIONS_POLICY) == (
        "camera=(), microphone=(), geolocation=(), fullscreen=(self), payment=()"
    )


def test_cache_headers():
    assert cache_headers("/files/sitemap.xml") == {"Cache-Control": "public, max-age=3600, immutable"}
    assert cache_headers("/orders/1")["Expires"] == "0"


def test_headers_on_every_response(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    headers = response.headers

    csp = headers["content-security-policy"]
    assert csp.startswith("default-src 'none'; ")
    assert "frame-ancestors 'none'" in csp
    assert "form-action 'none'" in csp
    assert csp.endswith("report-uri /csp-report")

    assert headers["permissions-policy"] == build_permissions_policy(PERMISSIONS_POLICY)
    assert headers["strict-transport-security"] == "max-age=31536000; includeSubDomains; preload"
    assert headers["x-content-type-options"] == "nosniff"
    assert headers["x-frame-options"] == "DENY"
    assert headers["referrer-policy"] == "no-referrer"
    assert headers["cross-origin-opener-policy"] == "same-origin"
    assert headers["cross-origin-resource-policy"] == "same-origin"
    assert headers["cross-origin-embedder-policy"] == "require-corp"
    assert headers["cache-control"] == "no-store, no-cache, must-revalidate, private"
    assert headers["pragma"] == "no-cache"
    assert headers["expires"] == "0"
    assert "x-powered-by" not in headers
    assert "x-request-id" in headers


def test_headers_on_error_responses(client):
    response = client.get("/orders/1")
    assert response.status_code == 401
    assert "content-security-policy" in response.headers
    assert response.headers["x-frame-options"] == "DENY"


def test_docs_are_served_without_csp(client):
    response = client.get("/docs")
    assert response.status_code == 200
    assert "content-security-policy" not in response.headers
    assert "cross-origin-embedder-policy" not in response.headers
    assert response.headers["x-content-type-options"] == "nosniff"


def test_fetch_metadata_blocks_cross_site(client):
    response = client.get("/healthz", headers={"Sec-Fetch-Site": "cross-site"})
    assert response.status_code == 400
    assert response.text == "Blocked by Fetch Metadata policy"
    assert "content-security-policy" in response.headers


def test_fetch_metadata_allows_same_origin(client):
    for site in ("same-origin", "same-site"):
        assert client.get("/healthz", headers={"Sec-Fetch-Site": site}).status_code == 200


def test_oversized_body_rejected(client):
    response = client.post(
        "/csp-report",
        content=b"x" * 1_048_577,
        headers={"Content-Type": "application/csp-report"},
    )
    assert response.status_code == 413


def chunks(total, size=65536):
    while total > 0:
        yield b" " * min(size, total)
        total -= size


@pytest.mark.parametrize("path", ["/csp-report", "/read", "/api/login"])
def test_oversized_chunked_body_rejected(client, path):
    # A generator body goes out chunked, without Content-Length
    response = client.post(path, content=chunks(1_048_577), headers={"Content-Type": "application/json"})
    assert response.status_code == 413
    assert response.json() == {"error": "Request body too large"}
    assert response.headers["x-frame-options"] == "DENY"


def test_small_chunked_body_passes(client):
    response = client.post(
        "/read", content=iter([b'{"filename": ', b'"report.txt"}']), headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 200
    assert response.json()["content"] == "quarterly numbers"


def test_csp_report_sink(client):
    report = {"csp-report": {"document-uri": "https://example.test/", "violated-directive": "script-src"}}
    response = client.post("/csp-report", json=report, headers={"Content-Type": "application/csp-report"})
    assert response.status_code == 204


def test_csp_report_rejects_garbage(client):
    response = client.post("/csp-report", content=b"{not json", headers={"Content-Type": "application/csp-report"})
    assert response.status_code == 400


def test_metrics_endpoint(client):
    client.get("/healthz")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text

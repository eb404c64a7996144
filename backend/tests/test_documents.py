import httpx
import pytest

from admin_console.errors import NetworkError, RemoteError, ValidationError
from admin_console.services.documents import DocumentProxy, document_filename


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://files.example.com/evidence/photo-1.jpg", "photo-1.jpg"),
        ("https://files.example.com/a/b/report.pdf?X-Amz-Signature=abc", "report.pdf"),
        ("https://files.example.com/a/quote%20final.pdf#page=2", "quote final.pdf"),
        ("https://files.example.com/", "download"),
        ("https://files.example.com", "download"),
    ],
)
def test_document_filename(url, expected):
    assert document_filename(url) == expected


def _proxy(handler, **kwargs) -> DocumentProxy:
    kwargs.setdefault("allowed_hosts", {"files.example.com"})
    return DocumentProxy(transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.parametrize(
    "url",
    ["http://files.example.com/a.pdf", "ftp://files.example.com/a.pdf", "https://evil.example.net/a.pdf", "not a url"],
)
def test_validate_url_rejects(url):
    with pytest.raises(ValidationError):
        _proxy(lambda r: httpx.Response(200)).validate_url(url)


def test_empty_allowlist_accepts_any_https_host():
    proxy = _proxy(lambda r: httpx.Response(200), allowed_hosts=set())
    assert proxy.validate_url("https://anywhere.example.org/x.pdf").host == "anywhere.example.org"


@pytest.mark.asyncio
async def test_fetch_returns_content_without_admin_token():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

    document = await _proxy(handler).fetch("https://files.example.com/tickets/invoice.pdf?sig=1")

    assert document.content == b"%PDF-1.7"
    assert document.content_type == "application/pdf"
    assert document.filename == "invoice.pdf"
    assert "authorization" not in seen[0].headers


@pytest.mark.asyncio
async def test_fetch_upstream_error():
    with pytest.raises(RemoteError) as exc_info:
        await _proxy(lambda r: httpx.Response(403)).fetch("https://files.example.com/a.pdf")
    assert exc_info.value.message == "Download failed"


@pytest.mark.asyncio
async def test_fetch_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(NetworkError):
        await _proxy(handler).fetch("https://files.example.com/a.pdf")


@pytest.mark.asyncio
async def test_fetch_size_cap():
    proxy = _proxy(lambda r: httpx.Response(200, content=b"x" * 2048), max_bytes=1024)
    with pytest.raises(ValidationError):
        await proxy.fetch("https://files.example.com/big.bin")


@pytest.mark.asyncio
async def test_download_route(client, fake_api, auth_headers):
    fake_api.add(
        "GET",
        "/evidence/photo-1.jpg",
        handler=lambda r: httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"}),
    )

    response = await client.get(
        "/api/admin/download-document",
        params={"url": "https://files.example.com/evidence/photo-1.jpg"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.content == b"\xff\xd8jpeg"
    assert response.headers["content-disposition"] == 'attachment; filename="photo-1.jpg"'
    assert response.headers["content-type"] == "image/jpeg"


@pytest.mark.asyncio
async def test_download_route_requires_auth(client, fake_api):
    response = await client.get(
        "/api/admin/download-document", params={"url": "https://files.example.com/a.pdf"}
    )
    assert response.status_code == 401
    assert fake_api.calls == []


@pytest.mark.asyncio
async def test_download_route_rejects_disallowed_host(client, fake_api, auth_headers):
    response = await client.get(
        "/api/admin/download-document",
        params={"url": "https://evil.example.net/a.pdf"},
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Document host is not allowed"
    assert fake_api.calls == []


@pytest.mark.asyncio
async def test_redirect_to_disallowed_host_is_not_followed():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        if request.url.host == "files.example.com":
            return httpx.Response(302, headers={"location": "http://169.254.169.254/latest/meta-data/"})
        return httpx.Response(200, content=b"SECRET-METADATA")

    with pytest.raises(ValidationError):
        await _proxy(handler).fetch("https://files.example.com/evidence/a.pdf")
    assert seen == ["https://files.example.com/evidence/a.pdf"]


@pytest.mark.asyncio
async def test_redirect_within_allowlist_is_followed():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/evidence/a.pdf":
            return httpx.Response(301, headers={"location": "/evidence/v2/a.pdf"})
        return httpx.Response(200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

    document = await _proxy(handler).fetch("https://files.example.com/evidence/a.pdf")

    assert document.content == b"%PDF-1.7"
    assert document.filename == "a.pdf"


@pytest.mark.asyncio
async def test_redirect_loop_is_cut_short():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(302, headers={"location": "https://files.example.com/loop"})

    with pytest.raises(RemoteError):
        await _proxy(handler).fetch("https://files.example.com/loop")
    assert len(calls) == 6

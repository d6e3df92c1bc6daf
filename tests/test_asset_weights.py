"""Tests for the asset-weight diagnostic report."""
import httpx

from utils.asset_weights import extract_asset_urls, log_asset_weights, remote_size_bytes

HTML = (
    "<style>@font-face{src:url('data:font/otf;base64,QUJDRA==')}</style>"
    '<img src="https://cdn.test/a.png"><img src="https://cdn.test/a.png">'
    "<section style=\"background-image:url('https://cdn.test/b.png')\"></section>"
    '<img src="data:image/png;base64,QUJD">'
)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestExtractAssetUrls:
    def test_remote_deduplicated_in_order(self):
        remote, _ = extract_asset_urls(HTML)
        assert remote == ["https://cdn.test/a.png", "https://cdn.test/b.png"]

    def test_data_uris(self):
        _, inline = extract_asset_urls(HTML)
        assert sorted(inline) == ["data:font/otf;base64,QUJDRA==", "data:image/png;base64,QUJD"]


class TestRemoteSize:
    def test_head_content_length(self):
        client = _client(lambda request: httpx.Response(200, headers={"content-length": "2048"}))
        assert remote_size_bytes(client, "https://cdn.test/a.png") == 2048

    def test_ranged_get_fallback(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.headers.get("range")))
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(206, content=b"x" * 300)

        assert remote_size_bytes(_client(handler), "https://cdn.test/a.png") == 300
        assert seen[-1] == ("GET", "bytes=0-1048575")

    def test_network_error_counts_zero(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert remote_size_bytes(_client(handler), "https://cdn.test/a.png") == 0


class TestLogAssetWeights:
    def test_total_and_report(self, caplog):
        client = _client(lambda request: httpx.Response(200, headers={"content-length": "1000"}))
        with caplog.at_level("INFO", logger="utils.asset_weights"):
            total = log_asset_weights("generate-pdf", HTML, client=client)
        assert total == 1000 + 1000 + 6 + 3
        assert "Asset weights for generate-pdf" in caplog.text
        assert "https://cdn.test/a.png" in caplog.text
        assert "Total referenced assets" in caplog.text

"""
Output Store Tests.

============================================================
PURPOSE
============================================================
Layout, serialization stability and atomicity of token files.

============================================================
"""

import json
import os
import stat

import pytest

from token_exporter.addresses import normalize_address
from token_exporter.exceptions import ErrorKind, OutputWriteError
from token_exporter.models import LogoDescriptor, ResolvedToken
from token_exporter.storage import OutputStore

from tests.token_exporter.fakes import USDC_LOWER, USDC_POLYGON


def make_token(logo: bool = True) -> ResolvedToken:
    return ResolvedToken(
        symbol="USDC",
        name="USD Coin",
        address=normalize_address(USDC_LOWER),
        decimals=6,
        platforms={"ethereum": USDC_LOWER, "polygon": USDC_POLYGON},
        logo=LogoDescriptor(src="https://example.com/usdc.png") if logo else None,
    )


@pytest.fixture
def store(tmp_path):
    store = OutputStore(tmp_path / "tokens")
    store.ensure_root()
    return store


# ============================================================
# LAYOUT
# ============================================================

class TestLayout:
    """Tests for file locations."""

    def test_location_for(self, store):
        location = store.location_for("ethereum", normalize_address(USDC_LOWER))

        assert location == store.root / "ethereum" / f"{USDC_LOWER}.json"

    @pytest.mark.parametrize("chain_id", ["../escaped", "/tmp/escaped", "a/b", "."])
    def test_location_outside_root_rejected(self, store, chain_id):
        with pytest.raises(OutputWriteError) as exc_info:
            store.location_for(chain_id, normalize_address(USDC_LOWER))

        assert exc_info.value.kind == ErrorKind.IO_FAILURE

    def test_write_outside_root_rejected(self, store, tmp_path):
        token = make_token()
        location = tmp_path / "elsewhere" / f"{USDC_LOWER}.json"

        with pytest.raises(OutputWriteError):
            store.write(location, token)

        assert not location.parent.exists()

    def test_exists(self, store):
        token = make_token()
        location = store.location_for("ethereum", token.address)

        assert not store.exists(location)
        store.write(location, token)
        assert store.exists(location)

    def test_ensure_root_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(OutputWriteError) as exc_info:
            OutputStore(blocker / "tokens").ensure_root()

        assert exc_info.value.kind == ErrorKind.IO_FAILURE


# ============================================================
# SERIALIZATION
# ============================================================

class TestSerialization:
    """Tests for the on-disk JSON document."""

    def test_document_shape(self, store):
        token = make_token()
        location = store.write(store.location_for("ethereum", token.address), token)

        text = location.read_text(encoding="utf-8")
        data = json.loads(text)

        assert list(data) == ["symbol", "name", "address", "decimals", "type", "logo", "platforms"]
        assert data["address"] == USDC_LOWER
        assert data["decimals"] == 6
        assert data["type"] == "ERC20"
        assert data["logo"] == {"src": "https://example.com/usdc.png", "width": "32", "height": "32"}
        assert data["platforms"] == {"ethereum": USDC_LOWER, "polygon": USDC_POLYGON}
        assert text.startswith('{\n  "symbol": "USDC",')
        assert text.endswith("}\n")

    def test_logo_key_omitted_without_logo(self, store):
        token = make_token(logo=False)
        location = store.write(store.location_for("ethereum", token.address), token)

        data = json.loads(location.read_text(encoding="utf-8"))

        assert "logo" not in data

    def test_identical_bytes_on_rewrite(self, store):
        token = make_token()
        location = store.location_for("ethereum", token.address)

        first = store.write(location, token).read_bytes()
        second = store.write(location, token).read_bytes()

        assert first == second == OutputStore.serialize(token)

    def test_non_ascii_is_preserved(self, store):
        token = ResolvedToken(
            symbol="€URO",
            name="Euro Stablecoin",
            address=normalize_address(USDC_LOWER),
            decimals=2,
        )
        location = store.write(store.location_for("ethereum", token.address), token)

        assert "€URO" in location.read_text(encoding="utf-8")


# ============================================================
# ATOMICITY
# ============================================================

class TestAtomicWrite:
    """Tests for temp-file-and-rename writes."""

    def test_no_temp_files_left(self, store):
        token = make_token()
        location = store.write(store.location_for("ethereum", token.address), token)

        assert os.listdir(location.parent) == [location.name]

    def test_file_mode(self, store):
        token = make_token()
        location = store.write(store.location_for("ethereum", token.address), token)

        assert stat.S_IMODE(location.stat().st_mode) == 0o644

    def test_write_failure_raises_io_error(self, store):
        # a regular file where the chain directory should be
        (store.root / "ethereum").write_text("blocker")
        token = make_token()

        with pytest.raises(OutputWriteError) as exc_info:
            store.write(store.location_for("ethereum", token.address), token)

        assert exc_info.value.kind == ErrorKind.IO_FAILURE
        assert exc_info.value.address == USDC_LOWER

    def test_failed_replace_leaves_no_partial_file(self, store, monkeypatch):
        token = make_token()
        location = store.location_for("ethereum", token.address)

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(OutputWriteError):
            store.write(location, token)

        assert not location.exists()
        assert os.listdir(location.parent) == []

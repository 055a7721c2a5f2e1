"""
Tests for protocol dispatch.
"""

import pytest

from auctionhouse.core.config import ClientConfig
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.services import (
    AllPayAuctionService,
    AuctionServiceRegistry,
    EnglishAuctionService,
    ExponentialAuctionService,
    LinearAuctionService,
    LogarithmicAuctionService,
    VickreyAuctionService,
)
from auctionhouse.errors import UnsupportedProtocol


class TestRegistry:
    """Tests for tag-to-service resolution."""

    @pytest.mark.parametrize("tag, cls", [
        (ProtocolTag.ENGLISH, EnglishAuctionService),
        (ProtocolTag.ALLPAY, AllPayAuctionService),
        (ProtocolTag.LINEAR, LinearAuctionService),
        (ProtocolTag.EXPONENTIAL, ExponentialAuctionService),
        (ProtocolTag.LOGARITHMIC, LogarithmicAuctionService),
        (ProtocolTag.VICKREY, VickreyAuctionService),
    ])
    def test_every_tag_resolves(self, registry, config, tag, cls):
        service = registry.get(tag)
        assert isinstance(service, cls)
        assert service.protocol is tag
        assert service.contract_address == config.contract_address(tag)

    def test_string_tags(self, registry):
        assert registry.get("Logarithmic") is registry.get(ProtocolTag.LOGARITHMIC)

    def test_services_are_cached(self, registry):
        assert registry.get(ProtocolTag.ENGLISH) is registry.get(ProtocolTag.ENGLISH)

    def test_for_ref(self, registry):
        ref = AuctionRef(ProtocolTag.VICKREY, 3)
        assert isinstance(registry.for_ref(ref), VickreyAuctionService)

    def test_unknown_tag(self, registry):
        with pytest.raises(UnsupportedProtocol):
            registry.get("Candle")

    def test_unconfigured_chain(self, ledger, tmp_path):
        registry = AuctionServiceRegistry(ledger, ClientConfig(chain_id=1, data_dir=tmp_path))
        assert registry.available() == []
        with pytest.raises(UnsupportedProtocol):
            registry.get(ProtocolTag.ENGLISH)

    def test_partial_configuration(self, ledger, tmp_path):
        address = "0x" + "11" * 20
        config = ClientConfig(chain_id=1, data_dir=tmp_path, contracts={"Vickrey": address})
        registry = AuctionServiceRegistry(ledger, config)

        assert registry.available() == [ProtocolTag.VICKREY]
        assert registry.get("Vickrey").contract_address == address
        with pytest.raises(UnsupportedProtocol):
            registry.get("English")

    def test_range_settings_passed_through(self, ledger, tmp_path):
        config = ClientConfig(chain_id=5115, data_dir=tmp_path, scan_window=500)
        service = AuctionServiceRegistry(ledger, config).get("English")
        assert service.range_limit == 999
        assert service.scan_window == 500

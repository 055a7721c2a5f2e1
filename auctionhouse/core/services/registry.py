"""
Service registry - protocol tag to service dispatch.

Services are built lazily, one per protocol, and shared by every caller
holding the registry.
"""

import threading
import time
from typing import Callable, Dict, List, Type, Union

from auctionhouse.core.config import ClientConfig
from auctionhouse.core.ledger import LedgerTransport
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.services.allpay import AllPayAuctionService
from auctionhouse.core.services.base import AuctionService
from auctionhouse.core.services.dutch import (
    ExponentialAuctionService,
    LinearAuctionService,
    LogarithmicAuctionService,
)
from auctionhouse.core.services.english import EnglishAuctionService
from auctionhouse.core.services.vickrey import VickreyAuctionService

SERVICE_CLASSES: Dict[ProtocolTag, Type[AuctionService]] = {
    ProtocolTag.ENGLISH: EnglishAuctionService,
    ProtocolTag.ALLPAY: AllPayAuctionService,
    ProtocolTag.LINEAR: LinearAuctionService,
    ProtocolTag.EXPONENTIAL: ExponentialAuctionService,
    ProtocolTag.LOGARITHMIC: LogarithmicAuctionService,
    ProtocolTag.VICKREY: VickreyAuctionService,
}


class AuctionServiceRegistry:
    """Builds and caches the service for each configured protocol"""

    def __init__(
        self,
        transport: LedgerTransport,
        config: ClientConfig,
        clock: Callable[[], float] = time.time,
    ):
        self.transport = transport
        self.config = config
        self.clock = clock
        self._services: Dict[ProtocolTag, AuctionService] = {}
        self._lock = threading.Lock()

    def get(self, protocol: Union[ProtocolTag, str]) -> AuctionService:
        """
        Service for `protocol`.

        Raises:
            UnsupportedProtocol: for an unknown tag or one with no
                configured contract
        """
        tag = ProtocolTag.parse(protocol)
        with self._lock:
            service = self._services.get(tag)
            if service is None:
                service = SERVICE_CLASSES[tag](
                    self.transport,
                    self.config.contract_address(tag),
                    range_limit=self.config.range_limit or 0,
                    scan_window=self.config.scan_window,
                    clock=self.clock,
                )
                self._services[tag] = service
            return service

    def for_ref(self, ref: AuctionRef) -> AuctionService:
        return self.get(ref.protocol)

    def available(self) -> List[ProtocolTag]:
        """Protocols with a contract configured on this chain."""
        return [tag for tag in ProtocolTag if tag in self.config.contracts]

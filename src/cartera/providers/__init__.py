"""External data providers module."""

from cartera.providers.brokerage_gateway import (
    BrokerageGateway,
    CredentialProvider,
    FxHistoryProvider,
)
from cartera.providers.stub_provider import StubBrokerageGateway, StaticCredentialProvider
from cartera.providers.argentinadatos import ArgentinaDatosFxProvider

__all__ = [
    "BrokerageGateway",
    "CredentialProvider",
    "FxHistoryProvider",
    "StubBrokerageGateway",
    "StaticCredentialProvider",
    "ArgentinaDatosFxProvider",
]

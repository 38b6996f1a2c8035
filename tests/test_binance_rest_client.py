import unittest
from unittest.mock import MagicMock

import requests

from symbol_registry.integrations.binance_rest import BinanceRestClient, parse_exchange_info

_EXCHANGE_INFO = {
    "timezone": "UTC",
    "serverTime": 1551398400000,
    "symbols": [
        {
            "symbol": "ETHBTC",
            "status": "TRADING",
            "baseAsset": "ETH",
            "baseAssetPrecision": 8,
            "quoteAsset": "BTC",
            "quotePrecision": 8,
            "orderTypes": ["LIMIT", "LIMIT_MAKER", "MARKET"],
            "icebergAllowed": True,
        },
        {
            "symbol": "BTCUSDT",
            "status": "BREAK",
            "baseAsset": "BTC",
            "quoteAsset": "USDT",
        },
        {"status": "TRADING", "baseAsset": "XRP"},
    ],
}


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestParseExchangeInfo(unittest.TestCase):
    def test_maps_symbol_fields(self):
        symbols = parse_exchange_info(_EXCHANGE_INFO)

        self.assertEqual([s.symbol for s in symbols], ["ETHBTC", "BTCUSDT"])
        eth = symbols[0]
        self.assertEqual(eth.status, "TRADING")
        self.assertEqual(eth.base_asset, "ETH")
        self.assertEqual(eth.base_asset_precision, 8)
        self.assertEqual(eth.quote_asset, "BTC")
        self.assertEqual(eth.quote_precision, 8)
        self.assertEqual(eth.order_types, ("LIMIT", "LIMIT_MAKER", "MARKET"))
        self.assertTrue(eth.iceberg_allowed)

    def test_missing_fields_use_defaults(self):
        btc = parse_exchange_info(_EXCHANGE_INFO)[1]

        self.assertEqual(btc.base_asset_precision, 0)
        self.assertEqual(btc.order_types, ())
        self.assertFalse(btc.iceberg_allowed)

    def test_missing_top_level_keys_fail(self):
        with self.assertRaises(ValueError):
            parse_exchange_info({"symbols": []})
        with self.assertRaises(ValueError):
            parse_exchange_info({"serverTime": 1})


class TestBinanceRestClient(unittest.TestCase):
    def test_fetch_symbols_uses_exchange_info_endpoint(self):
        session = MagicMock()
        session.get.return_value = _response(_EXCHANGE_INFO)
        client = BinanceRestClient(session=session, base_url="https://example.test/", timeout_sec=4)

        snapshot = client.fetch_symbols()

        session.get.assert_called_once_with("https://example.test/api/v1/exchangeInfo", timeout=4)
        self.assertEqual(snapshot.exchange_id, 1)
        self.assertEqual(len(snapshot.symbols), 2)
        self.assertGreater(snapshot.snapshot_time, _EXCHANGE_INFO["serverTime"])
        self.assertGreaterEqual(snapshot.year, 2019)

    def test_http_error_propagates(self):
        session = MagicMock()
        response = _response({})
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        session.get.return_value = response

        with self.assertRaises(requests.HTTPError):
            BinanceRestClient(session=session).fetch_symbols()


if __name__ == "__main__":
    unittest.main()

import unittest

from pydantic import ValidationError

from symbol_registry.schemas.symbols import ExchangeSymbols, ExchangesSymbols, SymbolInfo


class TestExchangeSymbols(unittest.TestCase):
    def test_calendar_key_derived_from_snapshot_time(self):
        snapshot = ExchangeSymbols(exchange_id=1, snapshot_time=1551398400000)  # 2019-03-01T00:00Z
        self.assertEqual((snapshot.year, snapshot.month, snapshot.day), (2019, 3, 1))

    def test_explicit_calendar_key_is_overridden(self):
        snapshot = ExchangeSymbols(
            exchange_id=1,
            snapshot_time=1551398400000,
            year=1999,
            month=12,
            day=31,
        )
        self.assertEqual((snapshot.year, snapshot.month, snapshot.day), (2019, 3, 1))

    def test_out_of_range_snapshot_time_rejected(self):
        with self.assertRaises(ValidationError):
            ExchangeSymbols(exchange_id=1, snapshot_time=10**20)

    def test_negative_precision_rejected(self):
        with self.assertRaises(ValidationError):
            SymbolInfo(symbol="BTCUSDT", base_asset_precision=-1)

    def test_duplicate_exchange_rejected(self):
        entry = ExchangeSymbols(exchange_id=1, snapshot_time=1551398400000)
        with self.assertRaises(ValidationError):
            ExchangesSymbols(exchanges=[entry, entry])

    def test_empty_collection(self):
        self.assertTrue(ExchangesSymbols().is_empty())


if __name__ == "__main__":
    unittest.main()

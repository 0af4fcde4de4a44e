import pytest

from tests.helpers.market import write_trades


@pytest.fixture
def trades_file(tmp_path):
    """Write trade rows to ``tmp_path/trades.csv`` and return the path"""
    def _write(rows, name="trades.csv"):
        return write_trades(tmp_path / name, rows)
    return _write

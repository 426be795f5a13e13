"""
Tests for the command line interface
"""

import json

import pytest

from core.cli import main

from conftest import ORIGIN_LAT, ORIGIN_LNG, north_of_origin


@pytest.fixture
def listings_file(tmp_path):
    near = north_of_origin(0.5)
    far = north_of_origin(20)
    path = tmp_path / "listings.json"
    path.write_text(json.dumps([
        {"id": "near", "price": 1200, "bedrooms": 1,
         "latitude": near.latitude, "longitude": near.longitude},
        {"id": "far", "price": 900, "bedrooms": 2,
         "latitude": far.latitude, "longitude": far.longitude},
        {"id": "unmapped", "price": 1000, "bedrooms": 2},
    ]))
    return path


class TestAffordabilityCommand:
    def test_rent(self, capsys):
        assert main(["affordability", "--income", "3000", "--debts", "200"]) == 0
        assert json.loads(capsys.readouterr().out)["max_monthly_rent"] == 880

    def test_buy_yearly(self, capsys):
        code = main(["affordability", "--income", "60000", "--yearly", "--mode", "buy"])
        assert code == 0
        assert json.loads(capsys.readouterr().out)["max_property_price"] == 207651

    def test_no_income_prints_null(self, capsys):
        assert main(["affordability", "--income", "0"]) == 0
        assert json.loads(capsys.readouterr().out) is None

    def test_invalid_down_payment(self, capsys):
        assert main(["affordability", "--income", "5000", "--down-payment", "70"]) == 2
        assert "down_payment_percent" in capsys.readouterr().err


class TestNearbyCommand:
    def test_nearby(self, listings_file, capsys):
        code = main([
            "nearby", str(listings_file),
            "--lat", str(ORIGIN_LAT), "--lng", str(ORIGIN_LNG),
        ])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert [r["listing"]["id"] for r in data["results"]] == ["near"]

    def test_preferences_file(self, listings_file, tmp_path, capsys):
        prefs = tmp_path / "prefs.json"
        prefs.write_text(json.dumps({"bedrooms": [2]}))
        code = main([
            "nearby", str(listings_file),
            "--lat", str(ORIGIN_LAT), "--lng", str(ORIGIN_LNG),
            "--radius", "50", "--preferences", str(prefs),
        ])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert [r["listing"]["id"] for r in data["results"]] == ["far"]

    def test_missing_file(self, tmp_path, capsys):
        code = main(["nearby", str(tmp_path / "none.json"), "--lat", "0", "--lng", "0"])
        assert code == 1
        assert "File not found" in capsys.readouterr().err

    def test_invalid_radius(self, listings_file, capsys):
        code = main([
            "nearby", str(listings_file), "--lat", "0", "--lng", "0", "--radius", "900",
        ])
        assert code == 2
        assert "radius" in capsys.readouterr().err

    def test_sort_by_price(self, listings_file, capsys):
        code = main([
            "nearby", str(listings_file),
            "--lat", str(ORIGIN_LAT), "--lng", str(ORIGIN_LNG),
            "--radius", "50", "--sort", "price_asc",
        ])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert [r["listing"]["id"] for r in data["results"]] == ["far", "near"]

    def test_negative_limit(self, listings_file, capsys):
        code = main([
            "nearby", str(listings_file),
            "--lat", str(ORIGIN_LAT), "--lng", str(ORIGIN_LNG), "--limit", "-1",
        ])
        assert code == 2
        assert "limit" in capsys.readouterr().err

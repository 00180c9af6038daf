# tests/unit/catalog/test_unit_converter.py — v2
"""Tests for catalog/converter.py — depreciation and result reshaping."""

from __future__ import annotations

import pytest

from scavy.catalog.converter import component_to_item, depreciated_value, device_to_result
from scavy.catalog.models import CatalogComponent


class TestDepreciatedValue:
    def test_linear_depreciation(self):
        assert depreciated_value(100.0, 0.15, 3) == (16.5, 38.5)

    def test_floor(self):
        assert depreciated_value(10.0, 0.5, 5) == (0.0, 0.01)

    def test_new_part(self):
        assert depreciated_value(10.0, 0.2, 0) == (3.0, 7.0)


class TestComponentToItem:
    def test_uses_new_price(self):
        comp = CatalogComponent(component_name="SoC", market_value_new=40.0, depreciation_rate=0.1)
        item = component_to_item(comp, age_years=3, default_rate=0.15)
        assert item.market_value_low == pytest.approx(8.4)
        assert item.market_value_high == pytest.approx(19.6)

    def test_default_rate(self):
        comp = CatalogComponent(component_name="SoC", market_value_new=100.0)
        item = component_to_item(comp, age_years=3, default_rate=0.15)
        assert item.market_value_low == 16.5

    def test_falls_back_to_stored_range(self):
        comp = CatalogComponent(component_name="Port", market_value_low=2.0, market_value_high=5.0)
        item = component_to_item(comp, age_years=3, default_rate=0.15)
        assert (item.market_value_low, item.market_value_high) == (2.0, 5.0)

    def test_common_uses_truncated(self):
        comp = CatalogComponent(component_name="Port", common_uses=[str(i) for i in range(8)])
        assert len(component_to_item(comp, 3, 0.15).common_uses) == 5


class TestDeviceToResult:
    def test_contract_fields(self, sample_device):
        sample_device.id = 7
        result = device_to_result(sample_device)
        assert result.parent_object == "Nintendo Switch Console"
        assert result.from_database is True
        assert result.verified is True
        assert result.device_id == 7
        assert len(result.items) == 2
        assert result.total_estimated_value_low == pytest.approx(8.4 + 2.0)
        assert result.tools_needed == ["Tri-wing screwdriver"]
        assert result.disassembly.safety_warnings == ["Disconnect the battery first"]

    def test_zero_age_uses_default(self, sample_device):
        sample_device.estimated_device_age_years = 0
        result = device_to_result(sample_device)
        assert result.items[0].market_value_low == pytest.approx(8.4)

    def test_no_disassembly_block_without_data(self, sample_device):
        sample_device.disassembly_difficulty = None
        sample_device.safety_warnings = []
        assert device_to_result(sample_device).disassembly is None

    def test_disassembly_risks_exposed(self, sample_device):
        sample_device.disassembly_time_estimate = "20-30 minutes"
        sample_device.injury_risk = "Low"
        sample_device.damage_risk = "Medium"
        disassembly = device_to_result(sample_device).disassembly
        assert disassembly.time_estimate == "20-30 minutes"
        assert (disassembly.injury_risk, disassembly.damage_risk) == ("Low", "Medium")

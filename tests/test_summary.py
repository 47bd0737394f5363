"""Tests for provision summaries."""

from datetime import datetime
from decimal import Decimal

from orgbill.domain.report import ReportLineItem
from orgbill.domain.summary import ProvisionSummary


def _item(category="bank", net="100.00", provision="50.00", provision_vat="7.98", vat="19.00"):
    net = Decimal(net)
    vat = Decimal(vat)
    return ReportLineItem(
        original_entry_id="e-1",
        date=datetime(2024, 1, 15),
        category_type=category,
        net_amount=net,
        vat_amount=vat,
        gross_amount=net + vat,
        provision_amount=Decimal(provision),
        provision_vat_amount=Decimal(provision_vat),
    )


class TestFromLineItems:
    """Tests for totalling line items."""

    def test_totals(self):
        """Test that every amount is summed."""
        summary = ProvisionSummary.from_line_items(
            [_item(), _item(category="real_estate", net="200.00", provision="20.00", provision_vat="3.19")]
        )
        assert summary.entry_count == 2
        assert summary.total_net == Decimal("300.00")
        assert summary.total_vat == Decimal("38.00")
        assert summary.total_gross == Decimal("338.00")
        assert summary.total_provision == Decimal("70.00")
        assert summary.total_provision_vat == Decimal("11.17")
        assert summary.total_provision_gross == Decimal("70.00")
        assert summary.total_provision_net == Decimal("58.83")

    def test_category_breakdown(self):
        """Test per-category counts and amounts."""
        summary = ProvisionSummary.from_line_items(
            [_item(), _item(provision="10.00"), _item(category="", provision="5.00")]
        )
        breakdown = summary.get_category_breakdown()
        assert breakdown["bank"] == {
            "count": 2,
            "net": Decimal("200.00"),
            "provision": Decimal("60.00"),
        }
        assert breakdown["other"]["count"] == 1

    def test_breakdown_is_a_copy(self):
        """Test that callers cannot change the stored breakdown."""
        summary = ProvisionSummary.from_line_items([_item()])
        summary.get_category_breakdown()["bank"]["count"] = 99
        assert summary.category_breakdown["bank"]["count"] == 1

    def test_empty(self):
        """Test the summary of no line items."""
        summary = ProvisionSummary.from_line_items([])
        assert summary.is_empty
        assert summary == ProvisionSummary()
        assert summary.average_provision_per_entry == Decimal("0.00")
        assert summary.effective_provision_rate == Decimal("0.00")


class TestDerivedValues:
    """Tests for averages and rates."""

    def test_average_and_rate(self):
        """Test average provision per entry and effective rate."""
        summary = ProvisionSummary.from_line_items(
            [_item(provision="10.00"), _item(provision="5.00")]
        )
        assert summary.average_provision_per_entry == Decimal("7.50")
        assert summary.effective_provision_rate == Decimal("7.50")


class TestAdd:
    """Tests for combining summaries."""

    def test_add(self):
        """Test that add sums counts, amounts and breakdowns."""
        a = ProvisionSummary.from_line_items([_item()])
        b = ProvisionSummary.from_line_items([_item(category="insurance", provision="12.34")])
        total = a.add(b)
        assert total.entry_count == 2
        assert total.total_provision == Decimal("62.34")
        assert set(total.category_breakdown) == {"bank", "insurance"}

    def test_add_is_commutative_and_associative(self):
        """Test that the order of addition does not matter."""
        a = ProvisionSummary.from_line_items([_item(provision="0.01", provision_vat="0.00")])
        b = ProvisionSummary.from_line_items([_item(provision="33.33", provision_vat="5.32")])
        c = ProvisionSummary.from_line_items([_item(category="real_estate", provision="66.67")])
        assert a + b == b + a
        assert (a + b) + c == a + (b + c)

    def test_empty_is_identity(self):
        """Test that adding an empty summary changes nothing."""
        a = ProvisionSummary.from_line_items([_item()])
        assert a + ProvisionSummary() == a

    def test_dict_round_trip(self):
        """Test serializing and restoring a summary."""
        summary = ProvisionSummary.from_line_items([_item(), _item(category="insurance")])
        data = summary.to_dict()
        assert data["total_provision"] == "100.00"
        assert ProvisionSummary.from_dict(data) == summary
        assert ProvisionSummary.from_dict(None) == ProvisionSummary()

"""
Price Resolver Tests

Covers catalog lookups, derived balances and installment rounding,
and the display text bound to every template anchor.

Run with: python -m pytest tests/test_price_resolver.py -v
"""

import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from services.envelopes import (
    DEVICE_PRICES,
    PriceResolver,
    PurchaseSelection,
    TemplateLoader,
    UnknownSelectionError,
    ValidationError,
    lookup_device_price,
)


@pytest.fixture(autouse=True)
def load_templates():
    """Load the shipped template definitions before each test."""
    TemplateLoader.clear()
    TemplateLoader.load_all()
    yield
    TemplateLoader.clear()


def resolve(model='iPhone 13 Pro 128GB', insurance=False, down_payment=0, **kwargs):
    selection = PurchaseSelection(
        device_model=model,
        insurance_requested=insurance,
        down_payment=Decimal(str(down_payment))
    )
    return PriceResolver.resolve(selection, **kwargs)


class TestDeviceCatalog:
    """Each model resolves to its own price and nothing else."""

    @pytest.mark.parametrize('model,price', sorted(DEVICE_PRICES.items()))
    def test_known_model_gets_its_own_price(self, model, price):
        """A known model must never pick up another entry's price."""
        prices, _ = resolve(model=model)
        assert prices.device_price == Decimal(price)
        assert not prices.unknown_selection

    def test_models_do_not_share_last_entry_price(self):
        """Regression: the first catalog entry must not price like the last one."""
        assert lookup_device_price('iPhone 13 128GB') == Decimal('799')
        assert lookup_device_price('iPhone 13 Pro 128GB') == Decimal('999')
        assert lookup_device_price('Google Pixel 6 Pro 128GB') == Decimal('899')

    def test_unknown_model_priced_at_zero(self):
        """Unknown models default to $0 and are flagged."""
        prices, binding = resolve(model='Nokia 3310')
        assert prices.device_price == Decimal('0')
        assert prices.unknown_selection
        assert binding.get('/price1/') == '$0'
        assert binding.get('/itemdesc1/') == 'Nokia 3310'

    def test_unknown_model_strict_raises(self):
        """Strict mode refuses unknown models."""
        with pytest.raises(UnknownSelectionError) as exc_info:
            resolve(model='Nokia 3310', strict=True)
        assert exc_info.value.device_model == 'Nokia 3310'

    def test_model_lookup_is_exact(self):
        """Near-miss spellings are unknown, not fuzzy-matched."""
        assert lookup_device_price('iphone 13 128gb') == Decimal('0')


class TestPriceTable:
    """Derived quantities."""

    def test_end_to_end_example(self):
        """iPhone 13 Pro with insurance and $200 down."""
        prices, binding = resolve(model='iPhone 13 Pro 128GB', insurance=True, down_payment=200)

        assert prices.device_price == Decimal('999')
        assert prices.insurance_price == Decimal('240')
        assert prices.combined_total == Decimal('1239')
        assert prices.balance_device == Decimal('799')
        assert prices.balance_insurance == Decimal('240')
        assert prices.balance_combined == Decimal('1039')
        assert prices.monthly_installment == Decimal('43.29')
        assert binding.get('/amntpay/') == '$43.29'

    @pytest.mark.parametrize('down_payment', [0, 1, 200, '199.99', 999, 1239])
    def test_combined_balance_is_total_minus_down_payment(self, down_payment):
        prices, _ = resolve(insurance=True, down_payment=down_payment)
        assert prices.balance_combined == prices.combined_total - Decimal(str(down_payment))

    def test_down_payment_only_reduces_device_line(self):
        """The insurance line is financed in full."""
        prices, _ = resolve(insurance=True, down_payment=500)
        assert prices.balance_device == Decimal('499')
        assert prices.balance_insurance == Decimal('240')

    @pytest.mark.parametrize('model,down_payment,expected', [
        ('iPhone 13 128GB', 699, '$4.17'),      # 100 / 24 = 4.1666...
        ('iPhone 13 128GB', 796, '$0.13'),      # 3 / 24 = 0.125, rounds half up
        ('iPhone 13 128GB', 7, '$33.00'),       # 792 / 24 = 33
        ('Samsung Galaxy S22 Ultra 128GB', 0, '$49.96'),  # 1199 / 24 = 49.958...
    ])
    def test_monthly_installment_rounding(self, model, down_payment, expected):
        _, binding = resolve(model=model, down_payment=down_payment)
        assert binding.get('/amntpay/') == expected

    def test_down_payment_larger_than_total_goes_negative(self):
        """Overpaying is surfaced as negative balances, not clamped."""
        prices, binding = resolve(model='iPhone 13 128GB', down_payment=1500)

        assert prices.balance_device == Decimal('-701')
        assert prices.balance_combined == Decimal('-701')
        assert prices.monthly_installment == Decimal('-29.21')
        assert binding.get('/bal1/') == '-$701'
        assert binding.get('/bal3/') == '-$701'
        assert binding.get('/amntpay/') == '-$29.21'

    def test_fractional_down_payment_keeps_cents(self):
        _, binding = resolve(down_payment='199.50')
        assert binding.get('/dpay1/') == '$199.50'
        assert binding.get('/bal1/') == '$799.50'


class TestInsurance:
    """Insurance lines are independent of the device."""

    @pytest.mark.parametrize('model', sorted(DEVICE_PRICES))
    def test_insurance_requested(self, model):
        prices, binding = resolve(model=model, insurance=True)
        assert prices.insurance_price == Decimal('240')
        assert binding.get('/itemdesc2/') == 'Insurance'
        assert binding.get('/price2/') == '$240/24 months'
        assert binding.get('/bal2/') == '$240'

    @pytest.mark.parametrize('model', sorted(DEVICE_PRICES))
    def test_insurance_not_requested(self, model):
        prices, binding = resolve(model=model, insurance=False)
        assert prices.insurance_price == Decimal('0')
        assert binding.get('/itemdesc2/') == ''
        assert binding.get('/price2/') == ''
        assert binding.get('/bal2/') == '$0'


class TestAnchorBinding:
    """The binding covers exactly the template's anchors."""

    def test_binding_covers_every_declared_anchor(self):
        definition = TemplateLoader.get_default()
        _, binding = resolve(insurance=True, down_payment=200)
        assert binding.anchors() == definition.anchor_tokens()

    def test_every_value_present(self):
        """No anchor is left as None, even unused ones."""
        _, binding = resolve(insurance=False)
        assert all(isinstance(value, str) for value in binding.as_dict().values())

    def test_end_to_end_anchor_values(self):
        _, binding = resolve(model='iPhone 13 Pro 128GB', insurance=True, down_payment=200)
        assert binding.as_dict() == {
            '/adr/': '',
            '/itemdesc1/': 'iPhone 13 Pro 128GB',
            '/itemdesc2/': 'Insurance',
            '/price1/': '$999',
            '/price2/': '$240/24 months',
            '/price3/': '$1239',
            '/dpay1/': '$200',
            '/dpay2/': '$200',
            '/bal1/': '$799',
            '/bal2/': '$240',
            '/bal3/': '$1039',
            '/amntpay/': '$43.29',
        }

    def test_buyer_address_left_for_signer(self):
        """The address is a manual, unlocked field."""
        _, binding = resolve()
        address = binding.get_field('/adr/')
        assert address.is_manual
        assert not address.locked
        assert address.value == ''

    def test_populated_fields_are_locked(self):
        _, binding = resolve(insurance=True)
        assert all(f.locked for f in binding if not f.is_manual)

    def test_resolve_is_deterministic(self):
        assert resolve(insurance=True, down_payment=50) == resolve(insurance=True, down_payment=50)


class TestPurchaseSelectionPayload:
    """Parsing the purchase request payload."""

    def test_full_payload(self):
        selection = PurchaseSelection.from_payload({
            'signerPhoneSelection': 'iPhone 13 Pro 128GB',
            'signerInsuranceSelection': 'Yes',
            'signerDownPayment': '200',
        })
        assert selection == PurchaseSelection('iPhone 13 Pro 128GB', True, Decimal('200'))

    @pytest.mark.parametrize('answer', ['No', 'yes', '', None, True])
    def test_only_exact_yes_requests_insurance(self, answer):
        selection = PurchaseSelection.from_payload({
            'signerPhoneSelection': 'iPhone 13 128GB',
            'signerInsuranceSelection': answer,
        })
        assert selection.insurance_requested is False

    @pytest.mark.parametrize('raw', [None, '', '   '])
    def test_blank_down_payment_is_zero(self, raw):
        selection = PurchaseSelection.from_payload({'signerDownPayment': raw})
        assert selection.down_payment == Decimal('0')

    def test_numeric_down_payment(self):
        selection = PurchaseSelection.from_payload({'signerDownPayment': 150})
        assert selection.down_payment == Decimal('150')

    @pytest.mark.parametrize('raw', ['abc', '-5', 'NaN', 'Infinity'])
    def test_invalid_down_payment_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseSelection.from_payload({'signerDownPayment': raw})
        assert exc_info.value.field == 'signerDownPayment'

    @pytest.mark.parametrize('raw', ['1e28', '1000000000', '99999999999999999999999999999'])
    def test_oversized_down_payment_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseSelection.from_payload({'signerDownPayment': raw})
        assert exc_info.value.field == 'signerDownPayment'

    @pytest.mark.parametrize('raw,expected', [
        ('199.995', Decimal('200.00')),
        ('199.999', Decimal('200.00')),
        ('199.994', Decimal('199.99')),
        ('0.005', Decimal('0.01')),
    ])
    def test_down_payment_rounded_to_cents(self, raw, expected):
        selection = PurchaseSelection.from_payload({'signerDownPayment': raw})
        assert selection.down_payment == expected
        assert selection.down_payment.as_tuple().exponent == -2

    @pytest.mark.parametrize('raw', ['199.995', '199.999', '0.333'])
    def test_sub_cent_down_payment_lines_add_up(self, raw):
        selection = PurchaseSelection.from_payload({
            'signerPhoneSelection': 'iPhone 13 128GB',
            'signerDownPayment': raw,
        })
        prices, binding = PriceResolver.resolve(selection)

        assert prices.down_payment + prices.balance_device == prices.device_price
        dpay = Decimal(binding.get('/dpay1/').lstrip('$'))
        bal = Decimal(binding.get('/bal1/').lstrip('$'))
        assert dpay + bal == Decimal(binding.get('/price1/').lstrip('$'))

    def test_rounded_whole_dollar_down_payment_displays_without_cents(self):
        selection = PurchaseSelection.from_payload({
            'signerPhoneSelection': 'iPhone 13 128GB',
            'signerDownPayment': '199.999',
        })
        _, binding = PriceResolver.resolve(selection)
        assert binding.get('/dpay1/') == '$200'
        assert binding.get('/bal1/') == '$599'

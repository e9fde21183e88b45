from django import forms
from django.utils import timezone

from apps.common.phone import to_e164
from apps.payments.models import PaymentMethod

from .models import Order


class CheckoutForm(forms.Form):
    customer_name = forms.CharField(max_length=160, required=False, widget=forms.TextInput(attrs={"class": "input"}))
    customer_phone = forms.CharField(max_length=40, required=False, widget=forms.TextInput(attrs={"class": "input"}))
    customer_email = forms.EmailField(required=False, widget=forms.EmailInput(attrs={"class": "input"}))
    order_type = forms.ChoiceField(choices=Order.TYPE_CHOICES, initial="now")
    payment_method = forms.ChoiceField(choices=[("", "---")] + list(PaymentMethod.choices), required=False)
    scheduled_time = forms.DateTimeField(
        required=False, widget=forms.DateTimeInput(attrs={"type": "datetime-local", "class": "input"})
    )
    table_number = forms.CharField(max_length=20, required=False, widget=forms.TextInput(attrs={"class": "input"}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 2, "class": "textarea"}))
    checkout_key = forms.CharField(max_length=64, required=False, widget=forms.HiddenInput)

    def __init__(self, *args, restaurant=None, enabled_methods=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.restaurant = restaurant
        self.enabled_methods = set(enabled_methods or [])

    def clean_customer_phone(self):
        raw = (self.cleaned_data.get("customer_phone") or "").strip()
        if not raw:
            return ""
        try:
            return to_e164(raw)
        except ValueError:
            raise forms.ValidationError("Enter a valid phone number (e.g. 0712 345 678).")

    def clean_customer_name(self):
        return (self.cleaned_data.get("customer_name") or "").strip()

    def clean(self):
        cleaned = super().clean()
        order_type = cleaned.get("order_type") or "now"
        method = cleaned.get("payment_method") or ""

        if order_type == "later":
            if not method:
                self.add_error("payment_method", "Choose how to pay the deposit.")
            elif method == PaymentMethod.CASH:
                self.add_error("payment_method", "Pre-orders need a deposit paid upfront; cash is not available.")
            scheduled = cleaned.get("scheduled_time")
            if not scheduled:
                self.add_error("scheduled_time", "Pick a time for your pre-order.")
            elif scheduled <= timezone.now():
                self.add_error("scheduled_time", "The scheduled time must be in the future.")
            if not cleaned.get("customer_name"):
                self.add_error("customer_name", "Tell us who the pre-order is for.")
            if not cleaned.get("customer_phone") and "customer_phone" not in self.errors:
                self.add_error("customer_phone", "A phone number is required for pre-orders.")
        else:
            if not method:
                method = PaymentMethod.CASH.value
                cleaned["payment_method"] = method
            cleaned["scheduled_time"] = None

        always_ok = order_type == "now" and method == PaymentMethod.CASH
        if method and not always_ok and method not in self.enabled_methods:
            self.add_error("payment_method", "This payment method is not available for this restaurant.")

        if method == PaymentMethod.MPESA_DARAJA and not cleaned.get("customer_phone") and "customer_phone" not in self.errors:
            self.add_error("customer_phone", "Enter the M-Pesa phone number to receive the payment prompt.")
        return cleaned

    def first_error(self) -> str:
        for errors in self.errors.values():
            if errors:
                return str(errors[0])
        return "Please review the form."

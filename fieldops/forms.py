"""
Payload forms for the center reporting API.
"""
from django import forms

from core.models import LateStartReason


class RecordStartForm(forms.Form):
    schedule_id = forms.UUIDField()
    center_id = forms.IntegerField(min_value=1)
    # Defaults to the time the report is received
    actual_start_time = forms.DateTimeField(required=False)
    candidate_count = forms.IntegerField(min_value=0, required=False)
    late_start_reason_code = forms.ChoiceField(
        choices=[('', '')] + LateStartReason.choices, required=False,
    )
    late_start_reason_details = forms.CharField(required=False)
    notes = forms.CharField(required=False)

    def clean_late_start_reason_code(self):
        return self.cleaned_data.get('late_start_reason_code') or None


class RecordEndForm(forms.Form):
    actual_end_time = forms.DateTimeField(required=False)
    notes = forms.CharField(required=False)

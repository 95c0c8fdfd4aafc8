"""
Payload forms for the HQ timetable API.
"""
from django import forms


class ScheduleForm(forms.Form):
    """Create/update payload for an exam schedule."""

    exam_year_id = forms.IntegerField(min_value=1)
    subject_id = forms.IntegerField(min_value=1)
    grade = forms.IntegerField(min_value=1)
    exam_date = forms.DateField(input_formats=['%Y-%m-%d'])
    scheduled_start_time = forms.TimeField(input_formats=['%H:%M', '%H:%M:%S'])
    duration_minutes = forms.IntegerField()
    venue = forms.CharField(max_length=255, required=False)
    notes = forms.CharField(required=False)

    def __init__(self, *args, partial=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.partial = partial
        if partial:
            # Corrections cannot move a schedule to another exam year
            del self.fields['exam_year_id']
            for field in self.fields.values():
                field.required = False

    def changed_values(self):
        """Cleaned values for the keys actually present in the payload."""
        return {
            name: value for name, value in self.cleaned_data.items()
            if name in self.data
        }


class CancelSessionForm(forms.Form):
    schedule_id = forms.UUIDField()
    center_id = forms.IntegerField(min_value=1)
    reason = forms.CharField(required=False)

# leagues/forms.py
from __future__ import annotations

import re

from django import forms
from django.core.exceptions import ValidationError

from .models import Division, League


def _bs(field_or_bf, *, sel: bool = False, chk: bool = False) -> None:
    """Apply Bootstrap classes whether given a Field or a BoundField."""
    field = getattr(field_or_bf, "field", field_or_bf)
    widget = field.widget
    if not (sel or chk):
        sel = isinstance(widget, (forms.Select, forms.SelectMultiple))
        chk = isinstance(widget, (forms.CheckboxInput, forms.CheckboxSelectMultiple))
    if chk:
        cls = "form-check-input"
    elif sel:
        cls = "form-select"
    else:
        cls = "form-control"
    widget.attrs["class"] = (widget.attrs.get("class", "") + " " + cls).strip()


class LeagueForm(forms.ModelForm):
    class Meta:
        model = League
        fields = [
            "name", "description", "start_date", "end_date", "registration_deadline",
            "max_teams", "entry_fee", "venue", "match_format",
        ]
        widgets = {
            "description": forms.Textarea(attrs={"rows": 3}),
            "start_date": forms.DateInput(attrs={"type": "date"}),
            "end_date": forms.DateInput(attrs={"type": "date"}),
            "registration_deadline": forms.DateInput(attrs={"type": "date"}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for bf in self.visible_fields():
            _bs(bf)

    def clean(self):
        cleaned = super().clean()
        s, e, d = cleaned.get("start_date"), cleaned.get("end_date"), cleaned.get("registration_deadline")
        if s and e and e <= s:
            raise ValidationError("End date must be after the start date.")
        if s and d and d >= s:
            raise ValidationError("Registration deadline must be before the start date.")
        return cleaned


class LeagueCreateForm(LeagueForm):
    divisions = forms.CharField(
        required=False,
        label="Divisions",
        help_text="One per line or comma separated, strongest first. Leave empty for a single division.",
        widget=forms.Textarea(attrs={"rows": 3, "placeholder": "Division 1\nDivision 2"}),
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _bs(self.fields["divisions"])

    def clean_divisions(self):
        raw = self.cleaned_data.get("divisions") or ""
        names = [n.strip() for n in re.split(r"[,\n]", raw) if n.strip()]
        if len(set(n.lower() for n in names)) != len(names):
            raise ValidationError("Division names must be unique.")
        return names

    def league_data(self) -> dict:
        return {f: self.cleaned_data[f] for f in self.Meta.fields}


class DivisionForm(forms.Form):
    name = forms.CharField(max_length=80)
    max_teams = forms.IntegerField(min_value=2, initial=8)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for bf in self.visible_fields():
            _bs(bf)


class JoinLeagueForm(forms.Form):
    division = forms.ModelChoiceField(queryset=Division.objects.none(), label="League & division")

    def __init__(self, *args, leagues=None, **kwargs):
        super().__init__(*args, **kwargs)
        qs = Division.objects.select_related("league").order_by("league__name", "level")
        if leagues is not None:
            qs = qs.filter(league__in=leagues)
        self.fields["division"].queryset = qs
        self.fields["division"].label_from_instance = lambda d: f"{d.league.name} · {d.name}"
        _bs(self.fields["division"], sel=True)


class BulkLeagueForm(forms.Form):
    ACTIONS = [
        ("status", "Set status"),
        ("approve", "Approve"),
        ("delete", "Delete"),
    ]

    leagues = forms.ModelMultipleChoiceField(queryset=League.objects.all(), widget=forms.CheckboxSelectMultiple)
    action = forms.ChoiceField(choices=ACTIONS, initial="status")
    status = forms.ChoiceField(choices=League.Status.choices, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _bs(self.fields["action"], sel=True)
        _bs(self.fields["status"], sel=True)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("action") == "status" and not cleaned.get("status"):
            self.add_error("status", "Pick the new status.")
        return cleaned

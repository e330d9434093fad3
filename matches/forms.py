from __future__ import annotations

from django import forms

from .scoring import SETS_TO_WIN, parse_sets


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


class ScheduleForm(forms.Form):
    scheduled_date = forms.DateField(widget=forms.DateInput(attrs={"type": "date"}))
    scheduled_time = forms.TimeField(widget=forms.TimeInput(attrs={"type": "time"}))
    venue = forms.CharField(max_length=200, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for bf in self.visible_fields():
            _bs(bf)


class RescheduleForm(forms.Form):
    proposed_date = forms.DateField(widget=forms.DateInput(attrs={"type": "date"}))
    proposed_time = forms.TimeField(widget=forms.TimeInput(attrs={"type": "time"}))
    message = forms.CharField(
        max_length=500, required=False, widget=forms.Textarea(attrs={"rows": 2, "placeholder": "Optional note"})
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for bf in self.visible_fields():
            _bs(bf)


class ResultForm(forms.Form):
    """One pair of game fields per possible set; unused rows stay blank."""

    def __init__(self, *args, match_format: str = "best_of_3", **kwargs):
        super().__init__(*args, **kwargs)
        self.set_count = SETS_TO_WIN.get(match_format, 2) * 2 - 1
        for i in range(1, self.set_count + 1):
            for side in ("team1", "team2"):
                name = f"set{i}_{side}"
                self.fields[name] = forms.IntegerField(
                    min_value=0, max_value=99, required=False,
                    widget=forms.NumberInput(attrs={"inputmode": "numeric", "placeholder": "0"}),
                )
                _bs(self.fields[name])

    def set_rows(self):
        """(set number, team1 BoundField, team2 BoundField) for the template."""
        return [(i, self[f"set{i}_team1"], self[f"set{i}_team2"]) for i in range(1, self.set_count + 1)]

    def clean(self):
        cleaned = super().clean()
        rows = [(cleaned.get(f"set{i}_team1"), cleaned.get(f"set{i}_team2")) for i in range(1, self.set_count + 1)]
        cleaned["sets"] = parse_sets(rows)
        return cleaned

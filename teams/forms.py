from __future__ import annotations

from django import forms


def _bs(field_or_bf, *, sel: bool = False, chk: bool = False) -> None:
    """Apply Bootstrap 5 classes to a Field or BoundField."""
    field = getattr(field_or_bf, "field", field_or_bf)  # BoundField -> Field
    widget = field.widget
    classes = set(widget.attrs.get("class", "").split())
    classes.discard("form-control")
    classes.discard("form-select")
    classes.discard("form-check-input")
    if chk:
        classes.add("form-check-input")
    elif sel:
        classes.add("form-select")
    else:
        classes.add("form-control")
    widget.attrs["class"] = " ".join(sorted(c for c in classes if c))


class TeamCreateForm(forms.Form):
    name = forms.CharField(max_length=100, label="Team name")
    teammate_email = forms.EmailField(
        label="Teammate email",
        help_text="If your teammate has no account yet, we'll email them an invitation.",
        widget=forms.EmailInput(attrs={"autocomplete": "off", "inputmode": "email"}),
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for bf in self.visible_fields():
            _bs(bf)

    def clean_teammate_email(self):
        return (self.cleaned_data.get("teammate_email") or "").strip().lower()


class TeamRenameForm(forms.Form):
    name = forms.CharField(max_length=100, label="Team name")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _bs(self.fields["name"])


class AddPlayerForm(forms.Form):
    email = forms.EmailField(label="Player email")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _bs(self.fields["email"])

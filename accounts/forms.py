#accounts/forms.py
from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import (
    UserCreationForm,
    AuthenticationForm,
    PasswordResetForm,
    SetPasswordForm,
)

User = get_user_model()


def _add_bootstrap_classes(field, *, is_select=False, is_checkbox=False, is_file=False):
    base = field.widget.attrs.get("class", "").split()
    if is_checkbox:
        cls = "form-check-input"
    elif is_select:
        cls = "form-select"
    else:
        cls = "form-control"
    if cls not in base:
        base.append(cls)
    field.widget.attrs["class"] = " ".join(c for c in base if c)


class RegisterForm(UserCreationForm):
    """
    Sign-up with email as the login name.
    Players are active straight away; league admins wait for a super admin.
    """
    role = forms.ChoiceField(
        choices=[
            (User.Roles.PLAYER, "Player"),
            (User.Roles.LEAGUE_ADMIN, "League Admin (requires approval)"),
        ],
        initial=User.Roles.PLAYER,
        label="I want to join as",
    )

    class Meta:
        model = User
        fields = ("email", "full_name", "phone", "country")
        widgets = {
            "email": forms.EmailInput(attrs={
                "placeholder": "Email address",
                "autocomplete": "email",
                "inputmode": "email",
            }),
            "full_name": forms.TextInput(attrs={
                "placeholder": "Full name",
                "autocomplete": "name",
            }),
            "phone": forms.TextInput(attrs={
                "placeholder": "Phone number",
                "inputmode": "tel",
                "autocomplete": "tel",
            }),
            "country": forms.TextInput(attrs={
                "placeholder": "Country",
                "autocomplete": "country-name",
            }),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["full_name"].required = True
        for name in self.Meta.fields:
            _add_bootstrap_classes(self.fields[name])
        _add_bootstrap_classes(self.fields["role"], is_select=True)
        for name in ("password1", "password2"):
            if name in self.fields:
                self.fields[name].widget.attrs.setdefault(
                    "placeholder",
                    "Password" if name == "password1" else "Confirm password",
                )
                self.fields[name].widget.attrs.setdefault("autocomplete", "new-password")
                self.fields[name].help_text = ""
                _add_bootstrap_classes(self.fields[name])

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if email and User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("This email is already in use.")
        return email

    def save(self, commit=True):
        user = super().save(commit=False)
        user.username = user.email
        user.role = self.cleaned_data["role"]
        user.is_approved = user.role != User.Roles.LEAGUE_ADMIN
        if commit:
            user.save()
        return user


class LoginForm(AuthenticationForm):
    username = forms.CharField(
        label="Email",
        widget=forms.EmailInput(
            attrs={
                "autofocus": True,
                "autocomplete": "email",
                "class": "form-control",
                "placeholder": "Email",
            }
        )
    )
    password = forms.CharField(
        strip=False,
        widget=forms.PasswordInput(
            attrs={
                "autocomplete": "current-password",
                "class": "form-control",
                "placeholder": "Password",
            }
        )
    )

    def clean_username(self):
        return (self.cleaned_data.get("username") or "").strip().lower()


class ProfileForm(forms.ModelForm):
    class Meta:
        model = User
        fields = ["full_name", "email", "phone", "country", "avatar"]
        widgets = {
            "full_name": forms.TextInput(attrs={"placeholder": "Full name", "autocomplete": "name"}),
            "email": forms.EmailInput(attrs={"placeholder": "Email", "autocomplete": "email", "inputmode": "email"}),
            "phone": forms.TextInput(attrs={"placeholder": "Phone", "autocomplete": "tel", "inputmode": "tel"}),
            "country": forms.TextInput(attrs={"placeholder": "Country", "autocomplete": "country-name"}),
            "avatar": forms.FileInput(attrs={"accept": "image/*"}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name, field in self.fields.items():
            _add_bootstrap_classes(field, is_file=(name == "avatar"))

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if email and User.objects.exclude(pk=self.instance.pk).filter(email__iexact=email).exists():
            raise forms.ValidationError("This email is already in use.")
        return email

    def save(self, commit=True):
        user = super().save(commit=False)
        # Email is also the login name
        user.username = user.email
        if commit:
            user.save()
        return user


class AdminRoleUpdateForm(forms.Form):
    role = forms.ChoiceField(choices=User.Roles.choices, required=True)
    reason = forms.CharField(
        max_length=255,
        required=False,
        help_text="Optional note for audit log.",
        widget=forms.Textarea(attrs={"rows": 2, "placeholder": "Reason for change (optional)"}),
    )

    def __init__(self, *, target_user, acting_user, **kwargs):
        super().__init__(**kwargs)
        self.target_user = target_user
        self.acting_user = acting_user

        if target_user.is_superuser:
            self.fields["role"].choices = [(User.Roles.SUPER_ADMIN, "Super Admin")]

        _add_bootstrap_classes(self.fields["role"], is_select=True)
        _add_bootstrap_classes(self.fields["reason"])

    def clean(self):
        cleaned = super().clean()
        new_role = cleaned.get("role")
        if not self.acting_user.is_super_admin():
            raise forms.ValidationError("You are not allowed to change roles.")
        if self.target_user.pk == self.acting_user.pk:
            raise forms.ValidationError("You cannot change your own role")
        if self.target_user.is_superuser and new_role != User.Roles.SUPER_ADMIN:
            raise forms.ValidationError("A superuser must have the Super Admin role.")
        return cleaned


class BootstrapPasswordResetForm(PasswordResetForm):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["email"].widget.attrs.update({
            "class": "form-control",
            "placeholder": "name@example.com",
            "autocomplete": "email",
        })


class BootstrapSetPasswordForm(SetPasswordForm):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["new_password1"].widget.attrs.update({
            "class": "form-control",
            "placeholder": "New password",
            "autocomplete": "new-password",
        })
        self.fields["new_password2"].widget.attrs.update({
            "class": "form-control",
            "placeholder": "Confirm new password",
            "autocomplete": "new-password",
        })
        for name in ("new_password1", "new_password2"):
            if name in self.fields:
                self.fields[name].help_text = ""

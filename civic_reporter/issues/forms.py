from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import UserCreationForm
from django.core.exceptions import ValidationError

from .models import Issue, Profile, is_staff_member

User = get_user_model()


class SignUpForm(UserCreationForm):
    email = forms.EmailField(required=True, widget=forms.EmailInput(attrs={"class": "form-control"}))
    full_name = forms.CharField(
        required=False,
        max_length=255,
        widget=forms.TextInput(attrs={"class": "form-control"}),
    )

    class Meta:
        model = User
        fields = ("username", "email", "password1", "password2")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["username"].widget.attrs.update({"class": "form-control"})
        self.fields["password1"].widget.attrs.update({"class": "form-control"})
        self.fields["password2"].widget.attrs.update({"class": "form-control"})

    def clean_email(self):
        email = self.cleaned_data["email"].lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("An account with this email already exists.")
        return email

    def save(self, commit=True):
        user = super().save(commit=commit)
        if commit:
            Profile.objects.filter(user=user).update(
                email=user.email,
                full_name=self.cleaned_data.get("full_name", ""),
            )
        return user


class IssueReportForm(forms.ModelForm):
    class Meta:
        model = Issue
        fields = ["title", "description", "category", "priority", "address", "location_lat", "location_lng"]
        widgets = {
            "title": forms.TextInput(attrs={"class": "form-control", "placeholder": "Brief description of the issue"}),
            "description": forms.Textarea(attrs={"class": "form-control", "rows": 5}),
            "category": forms.Select(attrs={"class": "form-select"}),
            "priority": forms.Select(attrs={"class": "form-select"}),
            "address": forms.TextInput(attrs={"class": "form-control", "placeholder": "Street address or landmark"}),
            "location_lat": forms.HiddenInput(),
            "location_lng": forms.HiddenInput(),
        }

    def clean(self):
        cleaned_data = super().clean()
        lat = cleaned_data.get("location_lat")
        lng = cleaned_data.get("location_lng")
        if (lat is None) != (lng is None):
            raise ValidationError("Both latitude and longitude are required for a location.")
        if lat is not None and not -90 <= lat <= 90:
            self.add_error("location_lat", "Latitude must be between -90 and 90.")
        if lng is not None and not -180 <= lng <= 180:
            self.add_error("location_lng", "Longitude must be between -180 and 180.")
        return cleaned_data


def staff_users():
    return User.objects.filter(profile__role__in=[Profile.Role.STAFF, Profile.Role.ADMIN]).order_by("username")


class StaffMemberChoiceField(forms.ModelChoiceField):
    def label_from_instance(self, obj):
        profile = getattr(obj, "profile", None)
        return profile.display_name if profile else obj.get_username()


class StaffIssueUpdateForm(forms.Form):
    status = forms.ChoiceField(
        choices=Issue.Status.choices,
        widget=forms.Select(attrs={"class": "form-select"}),
    )
    assigned_to = StaffMemberChoiceField(
        queryset=User.objects.none(),
        required=False,
        empty_label="Unassigned",
        widget=forms.Select(attrs={"class": "form-select"}),
    )
    message = forms.CharField(
        required=False,
        widget=forms.Textarea(
            attrs={
                "class": "form-control",
                "rows": 3,
                "placeholder": "Add a comment or update...",
            }
        ),
    )

    def __init__(self, *args, **kwargs):
        issue = kwargs.pop("issue", None)
        if issue is not None:
            kwargs.setdefault(
                "initial",
                {"status": issue.status, "assigned_to": issue.assigned_to_id},
            )
        super().__init__(*args, **kwargs)
        self.fields["assigned_to"].queryset = staff_users().select_related("profile")

    def clean_assigned_to(self):
        assigned_to = self.cleaned_data.get("assigned_to")
        if assigned_to and not is_staff_member(assigned_to):
            raise ValidationError("Assigned user must be a staff account.")
        return assigned_to

    def clean_message(self):
        message = self.cleaned_data.get("message", "").strip()
        if message and len(message) < 3:
            raise ValidationError("Update must be at least 3 characters.")
        return message

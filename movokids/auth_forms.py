from django import forms
from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.forms import UserCreationForm
from django.core.exceptions import ValidationError
from django.db import transaction

from .models import ChildProfile
from .quizzes import apply_quiz_result
from .validators import validate_not_in_future, validate_phone_number

User = get_user_model()


class SignupForm(UserCreationForm):
    """
    Parent signs up for their child.
    The email is the login; the child and parent details go on the profile.
    """

    email = forms.EmailField(widget=forms.EmailInput(attrs={
        'class': 'form-control',
        'placeholder': 'parent@example.com',
    }))
    child_first_name = forms.CharField(max_length=100)
    child_last_name = forms.CharField(max_length=100, required=False)
    child_birthday = forms.DateField(
        required=False,
        validators=[validate_not_in_future],
        widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
    )
    child_gender = forms.ChoiceField(
        choices=[('', '---')] + list(ChildProfile.Gender.choices), required=False
    )
    parent_first_name = forms.CharField(max_length=100, required=False)
    parent_last_name = forms.CharField(max_length=100, required=False)
    parent_phone = forms.CharField(max_length=20, required=False, validators=[validate_phone_number])
    parent_nationality = forms.CharField(max_length=100, required=False)

    PROFILE_TEXT_FIELDS = (
        'child_first_name', 'child_last_name', 'child_gender',
        'parent_first_name', 'parent_last_name', 'parent_phone', 'parent_nationality',
    )

    class Meta:
        model = User
        fields = ("email",)

    def __init__(self, *args, **kwargs):
        # Onboarding quiz result waiting in the session, if any
        self.pending_quiz = kwargs.pop('pending_quiz', None)
        super().__init__(*args, **kwargs)
        for name, field in self.fields.items():
            if name == 'child_gender':
                field.widget.attrs.setdefault('class', 'form-select')
            else:
                field.widget.attrs.setdefault('class', 'form-control')

        self.fields['password1'].help_text = 'At least 8 characters with letters and numbers.'

    def clean_email(self):
        email = self.cleaned_data.get('email', '').strip().lower()
        if User.objects.filter(username__iexact=email).exists() or User.objects.filter(email__iexact=email).exists():
            raise ValidationError('An account with this email already exists.')
        return email

    def save(self, commit=True):
        user = super().save(commit=False)
        user.username = self.cleaned_data['email']
        user.email = self.cleaned_data['email']
        user.first_name = self.cleaned_data.get('parent_first_name', '')
        user.last_name = self.cleaned_data.get('parent_last_name', '')
        if not commit:
            return user

        with transaction.atomic():
            user.save()
            profile = ChildProfile(
                user=user,
                child_birthday=self.cleaned_data.get('child_birthday'),
                **{name: self.cleaned_data.get(name) or '' for name in self.PROFILE_TEXT_FIELDS}
            )
            if self.pending_quiz:
                apply_quiz_result(profile, self.pending_quiz)
            profile.save()
        return user


class EmailLoginForm(forms.Form):
    """Login with the email the parent signed up with."""

    email = forms.EmailField(widget=forms.EmailInput(attrs={'class': 'form-control', 'autofocus': True}))
    password = forms.CharField(widget=forms.PasswordInput(attrs={'class': 'form-control'}))

    def __init__(self, request=None, *args, **kwargs):
        self.request = request
        self.user_cache = None
        super().__init__(*args, **kwargs)

    def clean(self):
        cleaned_data = super().clean()
        email = (cleaned_data.get('email') or '').strip().lower()
        password = cleaned_data.get('password')
        if email and password:
            self.user_cache = authenticate(self.request, username=email, password=password)
            if self.user_cache is None:
                raise ValidationError('Invalid email or password. Please try again.')
            if not self.user_cache.is_active:
                raise ValidationError('This account is inactive.')
        return cleaned_data

    def get_user(self):
        return self.user_cache

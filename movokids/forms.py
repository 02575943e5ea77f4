from django import forms
from django.core.exceptions import ValidationError

from .models import (
    Blog, DayGame, Game, LearningDay, PhysicalActivityVideo, SoloSessionRequest,
)
from .validators import validate_phone_number


class LearningDayForm(forms.ModelForm):
    """Back-office form for a day of the path. New days need 5 solved games and start active."""

    class Meta:
        model = LearningDay
        fields = ['day_number', 'title', 'title_ar', 'description', 'description_ar',
                  'required_correct_games', 'is_active']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['required_correct_games'].required = False
        self.fields['is_active'].required = False

    def clean_required_correct_games(self):
        value = self.cleaned_data.get('required_correct_games')
        if value is None:
            return 5
        if value < 1:
            raise ValidationError('A day needs at least one solved game.')
        return value

    def clean_is_active(self):
        # Missing on create means active; an explicit false still deactivates
        if 'is_active' not in self.data and not self.instance.pk:
            return True
        return self.cleaned_data.get('is_active')


class GameForm(forms.ModelForm):

    class Meta:
        model = Game
        fields = ['type', 'name', 'name_ar', 'description', 'description_ar',
                  'difficulty_level', 'config', 'is_active']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['difficulty_level'].required = False
        self.fields['config'].required = False
        self.fields['is_active'].required = False

    def clean_difficulty_level(self):
        return self.cleaned_data.get('difficulty_level') or 1

    def clean_config(self):
        config = self.cleaned_data.get('config')
        if config in (None, ''):
            return {}
        if not isinstance(config, dict):
            raise ValidationError('Game settings must be an object.')
        return config

    def clean_is_active(self):
        if 'is_active' not in self.data and not self.instance.pk:
            return True
        return self.cleaned_data.get('is_active')


class DayGameForm(forms.ModelForm):
    """Put a game on a day at a given position."""

    class Meta:
        model = DayGame
        fields = ['learning_day', 'game', 'order_in_day']

    def clean(self):
        cleaned_data = super().clean()
        day = cleaned_data.get('learning_day')
        order = cleaned_data.get('order_in_day')
        if day and order:
            clash = DayGame.objects.filter(learning_day=day, order_in_day=order)
            if self.instance.pk:
                clash = clash.exclude(pk=self.instance.pk)
            if clash.exists():
                raise ValidationError({'order_in_day': 'Another game already has this position on the day.'})
        return cleaned_data


class PhysicalActivityVideoForm(forms.ModelForm):

    class Meta:
        model = PhysicalActivityVideo
        fields = ['video_number', 'title', 'title_ar', 'description', 'description_ar',
                  'duration_seconds', 'thumbnail_url', 'storage_path', 'is_active']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['is_active'].required = False

    def clean_is_active(self):
        if 'is_active' not in self.data and not self.instance.pk:
            return True
        return self.cleaned_data.get('is_active')


class SoloSessionRequestForm(forms.ModelForm):
    """What a parent fills in to ask for a 1:1 session."""

    contact_phone = forms.CharField(max_length=20, required=False, validators=[validate_phone_number])

    class Meta:
        model = SoloSessionRequest
        fields = ['coach', 'preferred_time', 'notes', 'contact_phone']
        widgets = {
            'preferred_time': forms.DateTimeInput(attrs={'class': 'form-control', 'type': 'datetime-local'}),
            'notes': forms.Textarea(attrs={
                'class': 'form-control',
                'rows': 3,
                'placeholder': 'Anything the coach should know about your child?',
            }),
        }


class SoloSessionResponseForm(forms.Form):
    """Admin reply to a 1:1 request. 'edit' keeps a paid request paid."""

    STATUS_CHOICES = [
        (SoloSessionRequest.Status.APPROVED, 'Approve'),
        (SoloSessionRequest.Status.PAYMENT_PENDING, 'Ask for payment'),
        (SoloSessionRequest.Status.REJECTED, 'Reject'),
        (SoloSessionRequest.Status.PAID, 'Paid'),
        ('edit', 'Edit details'),
    ]

    status = forms.ChoiceField(choices=STATUS_CHOICES)
    meeting_link = forms.URLField(required=False)
    admin_reason = forms.CharField(required=False)
    scheduled_time = forms.DateTimeField(required=False)


class BlogForm(forms.ModelForm):

    class Meta:
        model = Blog
        fields = ['slug', 'title', 'description', 'content', 'thumbnail_url']

    def validate_unique(self):
        # Duplicate slugs are reported by create_blog / update_blog
        pass

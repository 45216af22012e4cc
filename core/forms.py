from django import forms
from django.contrib.auth.forms import UserCreationForm, PasswordChangeForm
from django.core.exceptions import ValidationError

from .menu import get_menu
from .models import CustomUser


def menu_choices():
    return [(section.key, section.title) for section in get_menu()]


class PortalUserForm(UserCreationForm):
    """Cadastro de usuário pelo administrador do portal"""
    first_name = forms.CharField(max_length=150, required=True)
    last_name = forms.CharField(max_length=150, required=False)
    allowed_menus = forms.MultipleChoiceField(
        required=False,
        widget=forms.CheckboxSelectMultiple,
        label="Menus liberados"
    )

    class Meta:
        model = CustomUser
        fields = ('username', 'first_name', 'last_name', 'email', 'role', 'team_type', 'allowed_menus', 'is_active')
        widgets = {
            'username': forms.TextInput(attrs={
                'class': 'form-control',
                'placeholder': 'Nome de usuário'
            }),
            'email': forms.EmailInput(attrs={
                'class': 'form-control',
                'placeholder': 'email@exemplo.com'
            }),
            'role': forms.Select(attrs={
                'class': 'form-control'
            }),
            'team_type': forms.Select(attrs={
                'class': 'form-control'
            }),
            'is_active': forms.CheckboxInput(attrs={
                'class': 'form-check-input'
            })
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['allowed_menus'].choices = menu_choices()
        self.fields['first_name'].widget.attrs.update({'class': 'form-control', 'placeholder': 'Nome'})
        self.fields['last_name'].widget.attrs.update({'class': 'form-control', 'placeholder': 'Sobrenome'})

    def clean_username(self):
        username = (self.cleaned_data.get('username') or '').strip()
        if not username:
            raise ValidationError('Informe o nome de usuário.')
        return username

    def save(self, commit=True):
        user = super().save(commit=False)
        user.allowed_menus = list(self.cleaned_data.get('allowed_menus') or [])
        if commit:
            user.save()
        return user


class PortalUserChangeForm(forms.ModelForm):
    """Edição de usuário (sem senha)"""
    allowed_menus = forms.MultipleChoiceField(
        required=False,
        widget=forms.CheckboxSelectMultiple,
        label="Menus liberados"
    )

    class Meta:
        model = CustomUser
        fields = ('username', 'first_name', 'last_name', 'email', 'role', 'team_type', 'allowed_menus', 'is_active')
        widgets = {
            'username': forms.TextInput(attrs={'class': 'form-control'}),
            'first_name': forms.TextInput(attrs={'class': 'form-control'}),
            'last_name': forms.TextInput(attrs={'class': 'form-control'}),
            'email': forms.EmailInput(attrs={'class': 'form-control'}),
            'role': forms.Select(attrs={'class': 'form-control'}),
            'team_type': forms.Select(attrs={'class': 'form-control'}),
            'is_active': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['allowed_menus'].choices = menu_choices()
        if self.instance and self.instance.pk:
            self.initial['allowed_menus'] = list(self.instance.allowed_menus or [])

    def changed_summary(self):
        """Campos alterados, para o log de auditoria"""
        return {name: self.cleaned_data.get(name) for name in self.changed_data}


class PortalPasswordChangeForm(PasswordChangeForm):
    """Troca da própria senha; a senha atual é verificada com check_password"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for field in self.fields.values():
            field.widget.attrs.update({'class': 'form-control'})

from django import forms
from django.contrib.auth import get_user_model

from core.exceptions import InvalidImageError

from .models import Ticket, TeamMember
from .storage import decode_data_url

User = get_user_model()


class TicketForm(forms.ModelForm):
    photo = forms.FileField(required=False, label="Foto")
    overdue_hours = forms.IntegerField(
        required=False,
        min_value=1,
        label="Limite de atraso (horas)",
        help_text="Vazio usa o limite padrão",
        widget=forms.NumberInput(attrs={'class': 'form-control', 'min': 1})
    )

    class Meta:
        model = Ticket
        fields = [
            'title', 'description', 'priority', 'category', 'project_name',
            'customer_contact', 'sales_name', 'sn_unit', 'assigned_to',
            'overdue_hours', 'overdue_enabled',
        ]
        widgets = {
            'title': forms.TextInput(attrs={
                'class': 'form-control',
                'placeholder': 'Resumo do problema',
                'maxlength': 255
            }),
            'description': forms.Textarea(attrs={
                'class': 'form-control',
                'rows': 5,
                'placeholder': 'Descreva o problema em detalhes...'
            }),
            'priority': forms.Select(attrs={'class': 'form-control'}),
            'category': forms.TextInput(attrs={'class': 'form-control'}),
            'project_name': forms.TextInput(attrs={'class': 'form-control'}),
            'customer_contact': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Nome e telefone'}),
            'sales_name': forms.TextInput(attrs={'class': 'form-control'}),
            'sn_unit': forms.TextInput(attrs={'class': 'form-control'}),
            'assigned_to': forms.Select(attrs={'class': 'form-control'}),
            'overdue_enabled': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_to'].queryset = TeamMember.objects.order_by('name')
        self.fields['overdue_enabled'].initial = True

    def clean_title(self):
        title = (self.cleaned_data.get('title') or '').strip()
        if not title:
            raise forms.ValidationError('Informe o título do ticket.')
        return title

    def clean_description(self):
        description = (self.cleaned_data.get('description') or '').strip()
        if not description:
            raise forms.ValidationError('Informe a descrição do ticket.')
        return description


class CommentForm(forms.Form):
    content = forms.CharField(
        label="Comentário",
        widget=forms.Textarea(attrs={
            'class': 'form-control',
            'rows': 3,
            'placeholder': 'Escreva um comentário...'
        })
    )


class ActivityForm(forms.Form):
    handler_name = forms.CharField(max_length=150, required=False, label="Responsável",
                                   widget=forms.TextInput(attrs={'class': 'form-control'}))
    action_taken = forms.CharField(required=False, label="Ação realizada",
                                   widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))
    notes = forms.CharField(required=False, label="Observações",
                            widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))
    new_status = forms.ChoiceField(choices=Ticket.STATUS_CHOICES, label="Novo status",
                                   widget=forms.Select(attrs={'class': 'form-control'}))
    sn_unit = forms.CharField(max_length=100, required=False, label="S/N da unidade",
                              widget=forms.TextInput(attrs={'class': 'form-control'}))
    photo = forms.FileField(required=False, label="Foto de documentação")
    report_file = forms.FileField(required=False, label="Relatório (PDF)",
                                  widget=forms.FileInput(attrs={'accept': '.pdf,application/pdf'}))
    assign_to_services = forms.BooleanField(required=False, label="Encaminhar ao Team Services")
    services_assignee = forms.ModelChoiceField(
        queryset=TeamMember.objects.filter(team_type=TeamMember.TEAM_SERVICES).order_by('name'),
        required=False,
        label="Responsável no Team Services",
        widget=forms.Select(attrs={'class': 'form-control'})
    )
    face_photo = forms.FileField(required=False, label="Foto de verificação facial",
                                 widget=forms.FileInput(attrs={'accept': 'image/*', 'capture': 'user'}))
    face_photo_data = forms.CharField(required=False, widget=forms.HiddenInput)
    client_token = forms.CharField(max_length=64, required=False, widget=forms.HiddenInput)

    def clean(self):
        cleaned_data = super().clean()
        # Snapshot da câmera chega como data URL quando não há arquivo
        if not cleaned_data.get('face_photo') and cleaned_data.get('face_photo_data'):
            try:
                cleaned_data['face_photo'] = decode_data_url(cleaned_data['face_photo_data'], 'face.jpg')
            except InvalidImageError as e:
                self.add_error('face_photo_data', e.message)
        return cleaned_data


class OverdueConfigForm(forms.Form):
    overdue_hours = forms.IntegerField(min_value=1, label="Limite de atraso (horas)",
                                       widget=forms.NumberInput(attrs={'class': 'form-control', 'min': 1}))
    overdue_enabled = forms.BooleanField(required=False, label="Controle de atraso ativo")


class DefaultOverdueForm(forms.Form):
    default_overdue_hours = forms.IntegerField(min_value=1, label="Limite padrão (horas)",
                                               widget=forms.NumberInput(attrs={'class': 'form-control', 'min': 1}))


class GuestMappingForm(forms.Form):
    guest = forms.ModelChoiceField(queryset=User.objects.none(), label="Convidado",
                                   widget=forms.Select(attrs={'class': 'form-control'}))
    project_name = forms.CharField(max_length=255, label="Projeto",
                                   widget=forms.TextInput(attrs={'class': 'form-control'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['guest'].queryset = User.objects.filter(role=User.ROLE_GUEST, is_active=True).order_by('username')

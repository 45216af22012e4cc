"""
Tabela de navegação do dashboard.

Cada seção agrupa entradas de um de três tipos: link externo (nova aba),
página externa embutida em iframe, ou rota interna do próprio portal. O clique
é despachado pelo tipo da entrada, nunca por flags avulsas por item.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Union

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class ExternalLink:
    name: str
    url: str
    icon: str = ''
    kind = 'external'


@dataclass(frozen=True)
class EmbeddedFrame:
    name: str
    url: str
    icon: str = ''
    kind = 'embed'


@dataclass(frozen=True)
class InternalRoute:
    name: str
    route: str
    icon: str = ''
    kind = 'internal'


MenuEntry = Union[ExternalLink, EmbeddedFrame, InternalRoute]

ENTRY_TYPES = {
    'external': ExternalLink,
    'embed': EmbeddedFrame,
    'internal': InternalRoute,
}


@dataclass(frozen=True)
class MenuSection:
    key: str
    title: str
    icon: str = ''
    description: str = ''
    gradient: str = ''
    items: List[MenuEntry] = field(default_factory=list)

    def entry(self, index) -> Optional[MenuEntry]:
        if 0 <= index < len(self.items):
            return self.items[index]
        return None


DEFAULT_MENU = [
    {
        'key': 'form-bast',
        'title': 'Form BAST & Demo',
        'icon': '📋',
        'gradient': 'slate',
        'description': 'Product review & handover documentation',
        'items': [
            {'kind': 'embed', 'name': 'Input Form', 'icon': '✍️',
             'url': 'https://portal.indovisual.co.id/form-review-demo-produk-bast-pts/'},
            {'kind': 'embed', 'name': 'View Database', 'icon': '📑',
             'url': 'https://docs.google.com/spreadsheets/d/1hIpMsZIadnJu85FiJ5Qojn_fOcYLl3iMsBagzZI4LYM/edit?usp=sharing'},
        ],
    },
    {
        'key': 'ticket-troubleshooting',
        'title': 'Ticket Troubleshooting',
        'icon': '🎫',
        'gradient': 'rose',
        'description': 'Technical support & issue tracking',
        'items': [
            {'kind': 'internal', 'name': 'Ticket Management', 'icon': '🔧',
             'route': 'ticketing:ticket_list'},
        ],
    },
    {
        'key': 'daily-report',
        'title': 'Daily Report',
        'icon': '📈',
        'gradient': 'emerald',
        'description': 'Activity tracking & performance metrics',
        'items': [
            {'kind': 'embed', 'name': 'Submit Report', 'icon': '✍️',
             'url': 'https://docs.google.com/forms/d/e/1FAIpQLSf2cCEPlQQcCR1IZ3GRx-ImgdJJ15rMxAoph77aNYmbl15gvw/viewform?embedded=true'},
            {'kind': 'embed', 'name': 'View Database', 'icon': '📑',
             'url': 'https://docs.google.com/spreadsheets/d/e/2PACX-1vRMeC3gBgeCAe5YNoVE4RfdANVyjx7xmtTA7C-G40KhExzgvAJ4cGTcyFcgbp4WWx7laBdC3VZrBGd0/pubhtml?gid=1408443365&single=true'},
        ],
    },
    {
        'key': 'database-pts',
        'title': 'Database PTS',
        'icon': '💼',
        'gradient': 'indigo',
        'description': 'Central repository & documentation',
        'items': [
            {'kind': 'external', 'name': 'Access Database', 'icon': '🗃️',
             'url': 'https://1drv.ms/f/c/25d404c0b5ee2b43/IgBDK-61wATUIIAlAgQAAAAAARPyRqbKPJAap5G_Ol5NmA8?e=fFU8wh'},
        ],
    },
    {
        'key': 'unit-movement',
        'title': 'Unit Movement Log',
        'icon': '🚚',
        'gradient': 'amber',
        'description': 'Equipment check-in & check-out tracking',
        'items': [
            {'kind': 'embed', 'name': 'Submit Movement', 'icon': '✍️',
             'url': 'https://docs.google.com/forms/d/e/1FAIpQLSfnfNZ1y96xei0KdMDewxGRr2nALwA0ZLW-kKPyGh5_YhK4HA/viewform?embedded=true'},
            {'kind': 'embed', 'name': 'View Database', 'icon': '📑',
             'url': 'https://docs.google.com/spreadsheets/d/e/2PACX-1vQIVshcP1qgXMwm121wufhmpEIze-I_99qaQb1ZnuUbekpvOV-xsfKX4p-16d1UHzG3mRHIpQcNriav/pubhtml?gid=383533237&single=true'},
        ],
    },
]


def build_entry(data) -> MenuEntry:
    """Converte um dicionário da configuração na variante correspondente"""
    data = dict(data)
    kind = data.pop('kind', None)
    entry_class = ENTRY_TYPES.get(kind)
    if entry_class is None:
        raise ImproperlyConfigured(f"Tipo de entrada de menu desconhecido: {kind!r}")
    try:
        return entry_class(**data)
    except TypeError as e:
        raise ImproperlyConfigured(f"Entrada de menu inválida ({kind}): {e}") from e


def build_menu(raw_sections) -> List[MenuSection]:
    sections = []
    seen = set()
    for raw in raw_sections:
        raw = dict(raw)
        items = [build_entry(item) for item in raw.pop('items', [])]
        section = MenuSection(items=items, **raw)
        if section.key in seen:
            raise ImproperlyConfigured(f"Chave de menu duplicada: {section.key}")
        seen.add(section.key)
        sections.append(section)
    return sections


def get_menu() -> List[MenuSection]:
    """Tabela de menu configurada (PORTAL_MENU) ou a padrão"""
    raw = getattr(settings, 'PORTAL_MENU', None) or DEFAULT_MENU
    return build_menu(raw)


def all_menu_keys():
    return [section.key for section in get_menu()]


def visible_sections(user) -> List[MenuSection]:
    """Seções que o usuário pode ver"""
    if not user or not user.is_authenticated:
        return []
    return [section for section in get_menu() if user.can_see_menu(section.key)]


def find_entry(user, section_key, index):
    """Localiza (seção, entrada) visível ao usuário, ou (None, None)"""
    for section in visible_sections(user):
        if section.key == section_key:
            return section, section.entry(index)
    return None, None

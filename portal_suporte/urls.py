from django.urls import path, include, re_path
from django.conf import settings
from django.conf.urls.static import static
from django.views.static import serve
from core.admin import portal_admin_site
from core.api import SessionView
from core.error_views import force_404
import os

urlpatterns = [
    path("admin/", portal_admin_site.urls),

    # Login, dashboard e gestão de contas
    path("", include("core.urls")),

    # Módulo de tickets (páginas e API)
    path("ticketing/", include(("ticketing.urls", "ticketing"), namespace="ticketing")),
    path("api/session/", SessionView.as_view(), name="api_session"),
    path("api/", include(("ticketing.api_urls", "api"), namespace="api")),
]

# Servir arquivos de mídia (fotos de atividades e capturas faciais)
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
elif os.path.exists(settings.MEDIA_ROOT):
    urlpatterns += [
        re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    ]

# Catch-all para 404 - deve ser o último
urlpatterns += [
    re_path(r'^.*$', force_404, name='catch_all_404'),
]

handler404 = 'core.error_views.custom_404'
handler500 = 'core.error_views.custom_500'
handler403 = 'core.error_views.custom_403'
handler400 = 'core.error_views.custom_400'

def portal_session(request):
    """Disponibiliza a sessão do portal nos templates"""
    return {'portal_session': getattr(request, 'portal_session', None)}

from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, logout, session_state,
    user_me, user_avatar, password_change, password_reset, password_reset_confirm,
    user_list_create, user_role_update, change_versions,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/session/', session_state, name='session-state'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/me/avatar/', user_avatar, name='user-avatar'),
    path('auth/password/change/', password_change, name='password-change'),
    path('auth/password/reset/', password_reset, name='password-reset'),
    path('auth/password/reset/confirm/', password_reset_confirm, name='password-reset-confirm'),

    # User administration endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/role/', user_role_update, name='user-role-update'),

    # Change notification
    path('changes/', change_versions, name='change-versions'),
]

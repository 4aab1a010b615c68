from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes, parser_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.mail import send_mail
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_encode, urlsafe_base64_decode
import logging

from .cache_utils import get_collection_versions
from .changes import TRACKED_COLLECTIONS
from .permissions import IsAdministrator
from .serializers import (
    UserSerializer, UserCreateSerializer, ProfileUpdateSerializer, RoleUpdateSerializer,
    PasswordChangeSerializer, PasswordResetSerializer, PasswordResetConfirmSerializer,
    AvatarUploadSerializer, CustomTokenObtainPairSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except User.DoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Blacklist the given refresh token"""
    refresh = request.data.get('refresh')
    if not refresh:
        return Response({'refresh': ['This field is required.']}, status=status.HTTP_400_BAD_REQUEST)
    try:
        RefreshToken(refresh).blacklist()
    except TokenError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"User {request.user.email} signed out")
    return Response(status=status.HTTP_205_RESET_CONTENT)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def session_state(request):
    """
    Report the caller's session state.

    A missing, expired or otherwise invalid token is reported as
    "unauthenticated" instead of failing with 401.
    """
    try:
        result = JWTAuthentication().authenticate(request)
    except (InvalidToken, AuthenticationFailed):
        result = None
    if result is None:
        return Response({'state': 'unauthenticated'})
    user, _ = result
    return Response({
        'state': 'authenticated',
        'profile': UserSerializer(user, context={'request': request}).data,
    })


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get or update the current user's profile"""
    user = request.user
    if request.method == 'GET':
        return Response(UserSerializer(user, context={'request': request}).data)
    serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(UserSerializer(user, context={'request': request}).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def user_avatar(request):
    """Upload, replace or delete the current user's avatar"""
    user = request.user
    if request.method == 'DELETE':
        if user.avatar:
            user.avatar.delete(save=False)
        user.avatar = None
        user.avatar_updated_at = None
        user.save(update_fields=['avatar', 'avatar_updated_at', 'updated_at'])
        return Response(UserSerializer(user, context={'request': request}).data)

    serializer = AvatarUploadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    upload = serializer.validated_data['avatar']
    # Free the key first so storage does not pick an alternative name
    if user.avatar:
        user.avatar.delete(save=False)
    user.avatar.save(upload.name, upload, save=False)
    user.avatar_updated_at = timezone.now()
    user.save(update_fields=['avatar', 'avatar_updated_at', 'updated_at'])
    logger.info(f"Avatar updated for user {user.email}")
    return Response(UserSerializer(user, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def password_change(request):
    serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    user = request.user
    user.set_password(serializer.validated_data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    return Response({'message': 'Password updated.'})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def password_reset(request):
    """Send a reset link; the answer never reveals whether the email exists"""
    serializer = PasswordResetSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    email = serializer.validated_data['email']
    user = User.objects.filter(email__iexact=email, is_active=True).first()
    if user is not None:
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        link = f"{settings.PASSWORD_RESET_URL}?uid={uid}&token={token}"
        send_mail(
            'Password reset',
            f"Use the link below to choose a new password:\n\n{link}\n",
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
        )
        logger.info(f"Password reset requested for {user.email}")
    return Response({'message': 'If the email is registered, a reset link has been sent.'})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def password_reset_confirm(request):
    serializer = PasswordResetConfirmSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        user = User.objects.get(pk=force_str(urlsafe_base64_decode(data['uid'])))
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None
    if user is None or not default_token_generator.check_token(user, data['token']):
        return Response({'error': 'Reset link is invalid or has expired.'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        validate_password(data['new_password'], user)
    except DjangoValidationError as e:
        return Response({'new_password': list(e.messages)}, status=status.HTTP_400_BAD_REQUEST)
    user.set_password(data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    return Response({'message': 'Password updated.'})


# User administration
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdministrator])
def user_list_create(request):
    """List all profiles or provision a new staff account"""
    if request.method == 'GET':
        users = User.objects.all().order_by('name', 'email')
        serializer = UserSerializer(users, many=True, context={'request': request})
        return Response(serializer.data)
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            user = serializer.save()
        logger.info(f"User {user.email} created with role {user.role} by {request.user.email}")
        return Response(UserSerializer(user, context={'request': request}).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdministrator])
def user_role_update(request, pk):
    """Reassign a user's role"""
    target = get_object_or_404(User, pk=pk)
    if target.pk == request.user.pk:
        logger.warning(f"User {request.user.email} tried to change their own role")
        return Response({'error': 'You cannot change your own role.'}, status=status.HTTP_403_FORBIDDEN)
    if target.is_administrator:
        logger.warning(f"User {request.user.email} tried to change the role of administrator {target.email}")
        return Response({'error': "An administrator's role cannot be changed."}, status=status.HTTP_403_FORBIDDEN)

    serializer = RoleUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    target.role = serializer.validated_data['role']
    target.save(update_fields=['role', 'updated_at'])
    logger.info(f"Role of {target.email} set to {target.role} by {request.user.email}")
    return Response(UserSerializer(target, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def change_versions(request):
    """Current version of each requested collection"""
    requested = request.query_params.get('collections')
    if requested:
        collections = [name.strip() for name in requested.split(',') if name.strip()]
        unknown = [name for name in collections if name not in TRACKED_COLLECTIONS]
        if unknown:
            return Response({'error': f"Unknown collections: {', '.join(unknown)}"}, status=status.HTTP_400_BAD_REQUEST)
    else:
        collections = list(TRACKED_COLLECTIONS)
    return Response(get_collection_versions(collections))

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from .models import User

ASSIGNABLE_ROLES = [
    (User.ROLE_MANAGER, 'Manager'),
    (User.ROLE_EMPLOYEE, 'Employee'),
]


class UserSerializer(serializers.ModelSerializer):
    """Profile as seen by the rest of the application"""
    role = serializers.CharField(source='effective_role', read_only=True)
    display_name = serializers.CharField(read_only=True)
    avatar_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'display_name', 'role', 'phone', 'bio',
                  'avatar_url', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['email', 'is_active', 'created_at', 'updated_at']

    def get_avatar_url(self, obj):
        if not obj.avatar:
            return None
        url = obj.avatar.url
        request = self.context.get('request')
        if request is not None:
            url = request.build_absolute_uri(url)
        # Same storage key on every upload, so clients need a changing query string
        if obj.avatar_updated_at:
            url = f"{url}?v={int(obj.avatar_updated_at.timestamp())}"
        return url


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['name', 'phone', 'bio']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    role = serializers.ChoiceField(choices=ASSIGNABLE_ROLES, default=User.ROLE_EMPLOYEE)

    class Meta:
        model = User
        fields = ['name', 'email', 'password', 'role', 'phone']
        extra_kwargs = {'name': {'required': True, 'allow_blank': False}}

    def validate_email(self, value):
        value = User.objects.normalize_email(value)
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        email = validated_data.pop('email')
        return User.objects.create_user(email, password=password, **validated_data)


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=ASSIGNABLE_ROLES)


class PasswordChangeSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_old_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect.')
        return value

    def validate_new_password(self, value):
        validate_password(value, self.context['request'].user)
        return value


class PasswordResetSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True)


class AvatarUploadSerializer(serializers.Serializer):
    avatar = serializers.ImageField()

    def validate_avatar(self, value):
        if value.size > settings.AVATAR_MAX_BYTES:
            raise serializers.ValidationError(
                f"Avatar must be at most {settings.AVATAR_MAX_BYTES // (1024 * 1024)} MB."
            )
        return value


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.effective_role
        return token

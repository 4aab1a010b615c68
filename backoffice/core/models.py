import os

from django.contrib.auth.models import AbstractUser, UserManager as BaseUserManager
from django.db import models


def avatar_upload_to(instance, filename):
    """One avatar per user, always stored under the same key"""
    ext = os.path.splitext(filename)[1].lower().lstrip('.') or 'png'
    return f"avatars/{instance.pk}/avatar.{ext}"


class UserManager(BaseUserManager):
    """Email is the login identifier; username mirrors it unless given"""

    def create_user(self, email, password=None, **extra_fields):
        username = extra_fields.pop('username', None) or email
        return super().create_user(username, email=email, password=password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        username = extra_fields.pop('username', None) or email
        extra_fields.setdefault('role', User.ROLE_ADMINISTRATOR)
        return super().create_superuser(username, email=email, password=password, **extra_fields)


class User(AbstractUser):
    """Staff account with its back-office profile"""
    ROLE_ADMINISTRATOR = 'administrator'
    ROLE_MANAGER = 'manager'
    ROLE_EMPLOYEE = 'employee'
    ROLE_CHOICES = [
        (ROLE_ADMINISTRATOR, 'Administrator'),
        (ROLE_MANAGER, 'Manager'),
        (ROLE_EMPLOYEE, 'Employee'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_EMPLOYEE)
    phone = models.CharField(max_length=20, blank=True, null=True)
    bio = models.TextField(blank=True)
    avatar = models.ImageField(upload_to=avatar_upload_to, blank=True, null=True)
    avatar_updated_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['name', 'email']

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return self.name or self.email.split('@')[0]

    @property
    def effective_role(self):
        if self.is_superuser:
            return self.ROLE_ADMINISTRATOR
        return self.role

    @property
    def is_administrator(self):
        return self.effective_role == self.ROLE_ADMINISTRATOR

    @property
    def is_manager_or_above(self):
        return self.effective_role in (self.ROLE_ADMINISTRATOR, self.ROLE_MANAGER)

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models

from utils.models import BaseModel


class CustomUserManager(BaseUserManager):

    def _create_user(self, username, email, name, last_name, password, **extra_fields):
        user = self.model(
            username=username,
            email=self.normalize_email(email),
            name=name,
            last_name=last_name,
            **extra_fields
        )
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, username, email, name="", last_name="", password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(username, email, name, last_name, password, **extra_fields)

    def create_superuser(self, username, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self._create_user(username, email, "", "", password, **extra_fields)


class User(BaseModel, AbstractUser):
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True, null=True)
    last_name = models.CharField(max_length=255, blank=True, null=True)
    objects = CustomUserManager()

    def __str__(self):
        return self.email

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import UniqueConstraint
from django.db.models.functions import Lower

from apps.common.models import BaseModel


class User(BaseModel, AbstractUser):
    """Restaurant owner account with UUID primary key and timestamps.

    Email is the identifier shown in the dashboard and is unique
    case-insensitively.
    """

    email = models.EmailField("email address", blank=True)
    phone_number = models.CharField(max_length=20, blank=True)

    class Meta(AbstractUser.Meta):
        constraints = [
            UniqueConstraint(
                Lower("email"), name="accounts_user_email_lower_uniq", violation_error_message="Email already registered"
            )
        ]

    def save(self, *args, **kwargs):
        if self.email:
            self.email = str(self.email).strip().lower()
        return super().save(*args, **kwargs)

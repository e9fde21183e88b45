from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _


User = get_user_model()


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("email", "username", "first_name", "last_name", "is_staff", "created_at")
    search_fields = ("email", "first_name", "last_name", "username", "phone_number")
    ordering = ("email",)

    fieldsets = DjangoUserAdmin.fieldsets + (
        (_("Contact"), {"fields": ("phone_number",)}),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        (_("Contact"), {"classes": ("wide",), "fields": ("email", "phone_number")}),
    )

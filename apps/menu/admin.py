from django.contrib import admin

from .models import MenuCategory, MenuItem


class MenuItemInline(admin.TabularInline):
    model = MenuItem
    extra = 0
    fields = ("name", "price", "is_available", "is_chef_special", "popularity_badge", "display_order")


@admin.register(MenuCategory)
class MenuCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "restaurant", "display_order", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "restaurant__name")
    inlines = [MenuItemInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ("name", "restaurant", "category", "price", "is_available", "is_chef_special")
    list_filter = ("is_available", "is_chef_special", "popularity_badge")
    search_fields = ("name", "restaurant__name")
    list_select_related = ("restaurant", "category")

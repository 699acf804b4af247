from django.contrib import admin
from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    readonly_fields = ('product', 'quantity', 'created_at', 'updated_at')

    def has_add_permission(self, request, obj=None):
        return False


class CartAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'item_count', 'updated_at')
    search_fields = ('user__username', 'user__email')
    readonly_fields = ('user', 'created_at', 'updated_at')
    inlines = [CartItemInline]

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = 'Items'


admin.site.register(Cart, CartAdmin)

from django.contrib import admin
from .models import Category, Product


class CategoryAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'slug', 'deleted_at')
    search_fields = ('name',)
    readonly_fields = ('slug', 'created_at', 'updated_at')

    def get_queryset(self, request):
        return Category.all_objects.all()


class ProductAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'category', 'price', 'stock', 'deleted_at')
    list_filter = ('category',)
    search_fields = ('name', 'description')
    readonly_fields = ('created_at', 'updated_at')
    actions = ['restore_selected']

    def get_queryset(self, request):
        return Product.all_objects.select_related('category')

    def restore_selected(self, request, queryset):
        for product in queryset:
            product.restore()
        self.message_user(request, "Selected products were restored.")
    restore_selected.short_description = "Restore selected products"


admin.site.register(Category, CategoryAdmin)
admin.site.register(Product, ProductAdmin)

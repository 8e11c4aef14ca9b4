from django.contrib import admin
from .models import Order, Transaction


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "status", "payment_status", "amount", "currency", "customer_email", "created_at", "updated_at")
    search_fields = ("id", "user_id", "customer_email", "customer_phone")
    list_filter = ("status", "payment_status", "currency", "created_at")
    # Payment state is owned by the PayU reconciler.
    readonly_fields = ("status", "payment_status", "payment_details", "created_at", "updated_at")


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "payment_id", "status", "amount", "customer_email", "created_at")
    search_fields = ("transaction_id", "payment_id", "customer_email")
    list_filter = ("status", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

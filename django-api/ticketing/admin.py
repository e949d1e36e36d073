from django.contrib import admin

from ticketing.models import Coupon, Event, PointGrant, Promotion, TicketType, Transaction, TransactionItem


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 1


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    can_delete = False
    readonly_fields = ["ticket_type", "quantity", "price_at_buy", "subtotal", "position"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "start_date", "available_seats", "total_seats"]
    search_fields = ["name"]
    inlines = [TicketTypeInline]


@admin.register(TicketType)
class TicketTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price", "available_quantity", "quantity"]
    list_filter = ["event"]


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ["code", "event", "current_usage", "max_usage", "valid_until"]
    list_filter = ["event"]
    search_fields = ["code"]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ["code", "user_id", "is_used", "valid_until"]
    list_filter = ["is_used"]
    search_fields = ["code"]


@admin.register(PointGrant)
class PointGrantAdmin(admin.ModelAdmin):
    list_display = ["user_id", "remaining_amount", "amount", "expires_at"]


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ["invoice_number", "event", "status", "final_amount", "payment_deadline"]
    list_filter = ["status"]
    search_fields = ["invoice_number"]
    readonly_fields = ["status"]
    inlines = [TransactionItemInline]

"""
Django admin configuration.
"""
from django.contrib import admin
from chathub.db.models import APIUsageLog, ChatSession, CreditTransaction, Message, Plan, Subscription

# Note: User admin is in chathub.account.admin


@admin.register(ChatSession)
class ChatSessionAdmin(admin.ModelAdmin):
    """Chat session admin."""
    list_display = ('id', 'chat_id', 'user', 'title', 'brainstorm_mode', 'deleted', 'updated_at')
    list_filter = ('brainstorm_mode', 'deleted', 'updated_at')
    search_fields = ('chat_id', 'title', 'user__email')
    readonly_fields = ('created_at', 'updated_at')
    ordering = ('-updated_at',)


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Message admin."""
    list_display = ('id', 'session', 'sequence', 'role', 'output_type', 'model', 'text_preview', 'credits_deducted', 'timestamp')
    list_filter = ('output_type', 'model')
    search_fields = ('user_input', 'api_response', 'session__chat_id')
    ordering = ('-timestamp',)

    def text_preview(self, obj):
        return obj.text[:50] + '...' if len(obj.text) > 50 else obj.text
    text_preview.short_description = 'Text'


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ('name', 'price', 'credits_per_month', 'stripe_product_id')
    search_fields = ('name',)


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'plan', 'status', 'payment_status', 'end_date')
    list_filter = ('status', 'payment_status', 'plan')
    search_fields = ('user__email', 'provider_ref')
    readonly_fields = ('created_at', 'updated_at')


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'credits_added', 'credits_deducted', 'payment_method', 'created_at')
    search_fields = ('user__email', 'description')
    readonly_fields = ('created_at',)


@admin.register(APIUsageLog)
class APIUsageLogAdmin(admin.ModelAdmin):
    """Usage log admin (read-mostly)."""
    list_display = ('id', 'user', 'model_name', 'usage_type', 'tokens_used', 'credits_deducted', 'api_cost', 'created_at')
    list_filter = ('model_name', 'usage_type')
    search_fields = ('user__email',)
    readonly_fields = ('created_at',)
    ordering = ('-created_at',)

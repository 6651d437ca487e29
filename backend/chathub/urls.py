"""
URL configuration for chathub project.
"""

from django.contrib import admin
from django.urls import path
from chathub.api import health, chats, models, subscriptions, webhook
from chathub.account.api import auth, users

urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),
    # Health check
    path("api/health/", health.health_check, name="health"),
    # Authentication
    path("api/auth/signup/", auth.signup, name="signup"),
    path("api/auth/login/", auth.login, name="login"),
    path("api/auth/refresh/", auth.refresh, name="refresh"),
    path("api/auth/logout/", auth.logout, name="logout"),
    # Users
    path("api/users/me/", users.get_current_user_endpoint, name="current_user"),
    path("api/users/me/credits/", users.get_user_credits, name="user_credits"),
    path("api/users/me/usage/", users.get_user_usage, name="user_usage"),
    path("api/users/me/plan/", users.get_user_plan, name="user_plan"),
    # Chat
    path("api/chat/chatWithGPT/", chats.chat_with_gpt, name="chat_with_gpt"),
    path("api/chat/saveMessage/", chats.save_message, name="save_message"),
    path("api/chat/saveChat/", chats.save_chat, name="save_chat"),
    path("api/chat/getChats/", chats.get_chats, name="get_chats"),
    path("api/chat/getChat/<str:chat_id>/", chats.get_chat, name="get_chat"),
    path("api/chat/deleteChat/", chats.delete_chat, name="delete_chat"),
    path("api/chat/restoreChat/", chats.restore_chat, name="restore_chat"),
    # Subscriptions
    path("api/subscriptions/plans/", subscriptions.list_plans, name="plans"),
    path("api/subscriptions/current/", subscriptions.current_subscription, name="current_subscription"),
    path("api/subscriptions/downgrade/", subscriptions.downgrade, name="downgrade_subscription"),
    path("api/subscriptions/restore/", subscriptions.restore, name="restore_subscription"),
    path("api/subscriptions/cancel/", subscriptions.cancel, name="cancel_subscription"),
    path("api/webhook/stripe/", webhook.stripe_webhook, name="stripe_webhook"),
    # Models
    path("api/models/", models.get_available_models, name="available_models"),
]

from django.urls import path
from . import views

urlpatterns = [
    # Health check
    path("health", views.health, name="health"),

    # Firestore document triggers (pushed by the event-trigger infrastructure)
    path("events/story-updated", views.story_updated, name="story_updated"),
    path("events/notification-queued", views.notification_queued, name="notification_queued"),
]

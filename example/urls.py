from django.urls import path

from . import views

urlpatterns = [
    path("fast", views.fast),
    path("slow", views.slow),
    path("very-slow", views.very_slow),
    path("health", views.health),
    path("teapot", views.teapot),
    path("boom", views.boom),
]

from django.urls import path
from . import views

app_name = 'quiz'

urlpatterns = [
    path('', views.index, name='index'),
    path('api/state/', views.state, name='state'),
    path('api/start/', views.start, name='start'),
    path('api/guess/toggle/', views.toggle_guess, name='toggle_guess'),
    path('api/guess/submit/', views.submit_guess, name='submit_guess'),
    path('api/response/', views.save_response, name='save_response'),
    path('api/next/', views.next_question, name='next_question'),
    path('api/previous/', views.previous_question, name='previous_question'),
    path('api/analyze/', views.analyze, name='analyze'),
    path('api/restart/', views.restart, name='restart'),
]

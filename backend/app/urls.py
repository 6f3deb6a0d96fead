from modules.core.urls import api_urlpatterns, health_urlpatterns, jwt_token_urlpatterns

urlpatterns = health_urlpatterns() + jwt_token_urlpatterns() + api_urlpatterns()

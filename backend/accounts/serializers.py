from rest_framework import serializers


class AuthIn(serializers.Serializer):
    # Telegram.WebApp.initData, verbatim
    init_data = serializers.CharField(max_length=4096, trim_whitespace=False)

from rest_framework import serializers

from users.services import password_service


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    first_name = serializers.CharField(max_length=150)
    last_name = serializers.CharField(max_length=150)
    street_address = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def validate_password(self, value):
        errors = password_service.validate_password(value)
        if errors:
            raise serializers.ValidationError(errors)
        return value


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class VerifyEmailSerializer(serializers.Serializer):
    token = serializers.CharField()


class EmailOnlySerializer(serializers.Serializer):
    email = serializers.EmailField()

# authflow/schema.py
from drf_spectacular.extensions import OpenApiAuthenticationExtension


def _bearer_jwt():
    return {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }


class CustomJWTAuthScheme(OpenApiAuthenticationExtension):
    target_class = "authflow.authentication.CustomJWTAuth"
    name = "BearerJWT"

    def get_security_definition(self, auto_schema):
        return _bearer_jwt()

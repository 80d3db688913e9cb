from rentauto.models.auth.user import User

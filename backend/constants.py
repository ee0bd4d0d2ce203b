"""
Constantes centralisées pour l'application Rentverse
Standardisation des valeurs et conventions utilisées dans l'application
"""

# ==================== CONFIGURATION GÉNÉRALE ====================

APP_NAME = "Rentverse"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "API de la place de marché locative Rentverse"

# ==================== CONFIGURATION DE SÉCURITÉ ====================

# JWT
DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES = 7 * 24 * 60  # 7 jours
JWT_ALGORITHM = "HS256"

# Mots de passe
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128
BCRYPT_ROUNDS = 12

# Verrouillage de compte (fenêtre glissante)
LOCKOUT_WINDOW_MINUTES = 15
LOCKOUT_MAX_FAILED_ATTEMPTS = 5

# Détection de force brute par adresse IP
BRUTE_FORCE_WINDOW_MINUTES = 15
BRUTE_FORCE_MAX_ATTEMPTS = 5

# Détection de nouvel appareil / nouvelle IP
ANOMALY_LOOKBACK_DAYS = 30
ANOMALY_HISTORY_SIZE = 20

# MFA (TOTP)
TOTP_CODE_LENGTH = 6
DEFAULT_TOTP_VALID_WINDOW = 2  # ±2 pas de 30 secondes
DEFAULT_MFA_ISSUER = "Rentverse"

# ==================== OAUTH ====================

# Fournisseurs pouvant être liés / déliés à un compte
OAUTH_LINKABLE_PROVIDERS = ("google", "facebook", "github", "twitter", "apple")

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE_SECONDS = 600

# ==================== PAGINATION ====================

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
SECURITY_DASHBOARD_LIMIT = 50
LOG_STATS_DEFAULT_DAYS = 7

# ==================== MESSAGES D'ERREUR STANDARDS ====================

ERROR_MESSAGES = {
    # Authentification
    "INVALID_CREDENTIALS": "Email ou mot de passe incorrect",
    "ACCOUNT_LOCKED": (
        "Compte temporairement verrouillé suite à des tentatives de connexion "
        "répétées. Réessayez dans 15 minutes."
    ),
    "TOKEN_INVALID": "Token invalide",
    "TOKEN_MISSING": "Authentification requise",
    "EMAIL_ALREADY_EXISTS": "Un utilisateur avec cet email existe déjà",

    # MFA
    "MFA_INVALID_CODE_FORMAT": "Veuillez saisir un code valide à 6 chiffres",
    "MFA_SETUP_INCOMPLETE": "Configuration MFA incomplète. Générez un nouveau QR code.",
    "MFA_NOT_CONFIGURED": "MFA non configurée pour cet utilisateur",
    "MFA_INVALID_CODE": "Code MFA invalide ou expiré",

    # Permissions
    "ACCESS_DENIED": "Accès refusé",
    "INSUFFICIENT_PERMISSIONS": "Permissions insuffisantes",
    "RESOURCE_NOT_FOUND": "Ressource non trouvée",

    # OAuth
    "OAUTH_INVALID_PROVIDER": "Fournisseur OAuth invalide",
    "OAUTH_ALREADY_LINKED": "Ce compte {provider} est déjà lié à un autre utilisateur",

    # Baux
    "LEASE_NOT_FOUND": "Bail introuvable",
    "LEASE_SIGN_FORBIDDEN": "Vous n'êtes pas autorisé à signer ce bail",
    "SIGNATURE_REQUIRED": "La signature est requise",

    # Utilisateurs
    "USER_NOT_FOUND": "Utilisateur non trouvé",
    "CANNOT_DELETE_SELF": "Un administrateur ne peut pas supprimer son propre compte",

    # Générique
    "INTERNAL_ERROR": "Erreur interne du serveur",
}

# ==================== MESSAGES DE SUCCÈS STANDARDS ====================

SUCCESS_MESSAGES = {
    "REGISTER_SUCCESS": "Inscription réussie",
    "LOGIN_SUCCESS": "Connexion réussie",
    "MFA_REQUIRED": "Vérification MFA requise",
    "MFA_LOGIN_SUCCESS": "Connexion réussie avec MFA",
    "MFA_SETUP": "Scannez le QR code avec votre application d'authentification",
    "MFA_ENABLED": "Authentification à deux facteurs activée",
    "MFA_DISABLED": "Authentification à deux facteurs désactivée",
    "OAUTH_LINKED": "Compte {provider} lié avec succès",
    "OAUTH_UNLINKED": "Compte {provider} délié avec succès",
    "SIGNATURE_SAVED": "Signature enregistrée",
    "USER_DELETED": "Utilisateur supprimé",
}

# ==================== NOTIFICATIONS ====================

NEW_SIGNIN_NOTIFICATION_TITLE = "Alerte de sécurité : nouvelle connexion"

"""Error taxonomy shared by services and routes.

Every error carries the HTTP status it maps to; the Flask error handler in
``kolia.app`` turns it into ``{"success": false, "message": ...}``.
"""

from typing import Any, Dict, Optional


class KoliaError(Exception):
    status_code = 500
    default_message = "Erreur interne du serveur"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)


class ValidationError(KoliaError, ValueError):
    status_code = 400
    default_message = "Données invalides"


class AuthenticationError(KoliaError):
    status_code = 401
    default_message = "Authentification requise"


class ForbiddenError(KoliaError):
    status_code = 403
    default_message = "Accès refusé"


class NotFoundError(KoliaError):
    status_code = 404
    default_message = "Ressource non trouvée"


class ConflictError(KoliaError):
    status_code = 400
    default_message = "Opération impossible dans l'état actuel"


class UpstreamError(KoliaError):
    status_code = 502
    default_message = "Service externe indisponible"


class PersistenceError(KoliaError):
    status_code = 500
    default_message = "Erreur de base de données"


class InvalidItem(ValidationError):
    def __init__(self, dish_id) -> None:
        super().__init__(f"Plat non disponible: {dish_id}", dish_id=dish_id)
        self.dish_id = dish_id


class RestaurantNotFound(ValidationError):
    def __init__(self, restaurant_id) -> None:
        super().__init__("Restaurant non trouvé", restaurant_id=restaurant_id)


class InvalidStatus(ValidationError):
    def __init__(self, status) -> None:
        super().__init__("Statut invalide", status=status)


class AmountMismatch(ValidationError):
    def __init__(self, expected, got) -> None:
        super().__init__("Montant incorrect", expected=str(expected), got=str(got))


class InvalidTransition(ConflictError):
    default_message = "Cette commande ne peut pas changer de statut"


class OrderNotFound(NotFoundError):
    default_message = "Commande non trouvée"


class TransactionNotFound(NotFoundError):
    default_message = "Transaction non trouvée"


class NotEligible(NotFoundError):
    default_message = "Transaction non trouvée ou non éligible au remboursement"


class GatewayError(UpstreamError):
    default_message = "Erreur lors de la communication avec la passerelle de paiement"


class NotificationError(UpstreamError):
    default_message = "Erreur lors de l'envoi de la notification"

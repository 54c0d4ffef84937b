"""
Wyjątki systemu etykietowania chmur punktów

- Błędy startowe (fatalne): ConfigError, ModelLoadError
- Błędy pojedynczego żądania (zgłaszane jako success=False): AcquisitionError, InferenceTimeout
- Naruszenia niezmienników (defekt, nie błąd użytkownika): InvariantViolation
"""


class LabelFusionError(Exception):
    """Bazowy wyjątek pakietu"""


class ConfigError(LabelFusionError):
    """Brakująca lub niepoprawna konfiguracja"""

    def __init__(self, message: str, key: str = ""):
        super().__init__(message)
        self.key = key


class ModelLoadError(LabelFusionError):
    """Nie udało się wczytać modelu klasyfikatora"""


class AcquisitionError(LabelFusionError):
    """Nie udało się pobrać danych dla żądania"""

    def __init__(self, message: str, waypoint_id: str = ""):
        super().__init__(message)
        self.waypoint_id = waypoint_id


class CloudAcquisitionError(AcquisitionError):
    """Brak chmury punktów dla obserwacji"""


class OriginAcquisitionError(AcquisitionError):
    """Brak pozycji sensora dla obserwacji"""


class AcquisitionTimeout(AcquisitionError):
    """Przekroczony czas oczekiwania na źródło danych"""


class InferenceTimeout(LabelFusionError):
    """Przekroczony czas inferencji CRF"""


class InvariantViolation(LabelFusionError):
    """Niezgodne wymiary macierzy lub liczby klas - błąd programistyczny"""

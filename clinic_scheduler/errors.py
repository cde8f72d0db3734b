# clinic_scheduler/errors.py


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidInterval(SchedulingError):
    status_code = 400


class BookingConflict(SchedulingError):
    status_code = 409


class InvalidTransition(SchedulingError):
    status_code = 409

    def __init__(self, current, target):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(f"Invalid transition from {current} to {target}")
        self.current = current
        self.target = target


class AppointmentClosed(SchedulingError):
    status_code = 409


class NotFound(SchedulingError):
    status_code = 404


class StoreUnavailable(SchedulingError):
    status_code = 503

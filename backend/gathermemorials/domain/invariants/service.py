from gathermemorials.domain.exceptions import InvariantViolation

SERVICE_TYPES = {"visitation", "funeral", "burial", "celebration"}


def assert_service(service):
    if service.service_type not in SERVICE_TYPES:
        raise InvariantViolation(f"Invalid service type: {service.service_type}")

from enum import Enum

class ErrorType(str, Enum):
    '''
    Structured classification of everything a request can fail with.

    INPUT_ERROR: request payload missing, malformed or semantically wrong. 400.
    VALIDATION_ERROR: payload failed schema validation, reported per field. 400.
    BUSINESS_RULE_ERROR: operation breaks a ledger rule (e.g. zero-cost allocation). 400.
    PERMISSION_DENIED: caller is logged in but lacks the role / assignment. 403.
    AUTH_REQUIRED: no valid session, client should redirect to the login endpoint. 401.
    NOT_FOUND: entity does not exist inside the caller's tenant. 404.
    IRREVERSIBLE_CONFLICT: record already left the state the operation needs
        (approving an approved amendment, duplicate name). Retrying never helps. 409.
    DATABASE_ERROR: constraint violation or connection failure. 500.
    SYSTEM_ERROR: anything unclassified. 500.
    '''
    # input problems
    INPUT_ERROR = "INPUT_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # business rules
    BUSINESS_RULE_ERROR = "BUSINESS_RULE_ERROR"

    # auth
    PERMISSION_DENIED = "PERMISSION_DENIED"
    AUTH_REQUIRED = "AUTH_REQUIRED"

    NOT_FOUND = "NOT_FOUND"

    # system
    SYSTEM_ERROR = "SYSTEM_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"

    # irreversible conflict
    IRREVERSIBLE_CONFLICT = "IRREVERSIBLE_CONFLICT"

"""
Unit tests for exception classes and unified_exception_handler.

不需要数据库，纯 Python 测试：
1. BaseAppException 默认值
2. 各子类的默认 type / code / http_status
3. 构造时覆盖 code / http_status
4. InvalidStateTransition 总是带 currentStatus
5. unified_exception_handler 把异常转成正确的 JsonResponse
"""
import json

from rest_framework.exceptions import NotAuthenticated, ParseError
from rest_framework.exceptions import ValidationError as DRFValidationError

from priorauth.exception_handler import unified_exception_handler
from priorauth.exceptions import (
    BaseAppException,
    IntegrationError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)


# -------------------------------------------------------------------
# Exception classes
# -------------------------------------------------------------------

class TestBaseAppException:

    def test_defaults(self):
        exc = BaseAppException('something broke')
        assert exc.message == 'something broke'
        assert exc.type == 'error'
        assert exc.code == 'UNKNOWN_ERROR'
        assert exc.http_status == 500
        assert exc.detail is None

    def test_override_code_and_status(self):
        exc = BaseAppException('bad', code='CUSTOM_CODE', http_status=418)
        assert exc.code == 'CUSTOM_CODE'
        assert exc.http_status == 418


class TestValidationError:

    def test_defaults(self):
        exc = ValidationError('bad input')
        assert exc.type == 'validation_error'
        assert exc.code == 'VALIDATION_ERROR'
        assert exc.http_status == 400

    def test_custom_code(self):
        exc = ValidationError('No valid fields to update', code='NO_VALID_FIELDS')
        assert exc.code == 'NO_VALID_FIELDS'
        assert exc.http_status == 400  # status 没变


class TestNotFoundError:

    def test_defaults(self):
        exc = NotFoundError('Patient not found', code='PATIENT_NOT_FOUND')
        assert exc.type == 'not_found'
        assert exc.code == 'PATIENT_NOT_FOUND'
        assert exc.http_status == 404


class TestInvalidStateTransition:

    def test_current_status_in_detail(self):
        exc = InvalidStateTransition('Cannot submit', current_status='submitted')
        assert exc.http_status == 400
        assert exc.current_status == 'submitted'
        assert exc.detail == {'currentStatus': 'submitted'}

    def test_extra_detail_kept(self):
        exc = InvalidStateTransition('Cannot submit', current_status='approved', detail={'id': 'pa-1'})
        assert exc.detail == {'id': 'pa-1', 'currentStatus': 'approved'}


class TestIntegrationError:

    def test_defaults(self):
        exc = IntegrationError('payer down')
        assert exc.type == 'integration_error'
        assert exc.code == 'PAYER_INTEGRATION_ERROR'
        assert exc.http_status == 500


# -------------------------------------------------------------------
# unified_exception_handler
# -------------------------------------------------------------------

class TestUnifiedExceptionHandler:

    def _body(self, response):
        return json.loads(response.content)

    def test_invalid_state_returns_400(self):
        response = unified_exception_handler(
            InvalidStateTransition("Cannot submit PA request. Current status is 'submitted'",
                                   current_status='submitted', code='PA_NOT_PENDING'),
            {},
        )
        body = self._body(response)

        assert response.status_code == 400
        assert body['type'] == 'invalid_state'
        assert body['code'] == 'PA_NOT_PENDING'
        assert body['detail']['currentStatus'] == 'submitted'

    def test_not_found_returns_404(self):
        response = unified_exception_handler(NotFoundError('Prior authorization request not found'), {})
        assert response.status_code == 404
        assert self._body(response)['message'] == 'Prior authorization request not found'

    def test_integration_error_returns_500(self):
        response = unified_exception_handler(IntegrationError('payer down', detail={'payer': 'Aetna'}), {})
        body = self._body(response)

        assert response.status_code == 500
        assert body['type'] == 'integration_error'
        assert body['detail']['payer'] == 'Aetna'

    def test_no_detail_field_when_none(self):
        response = unified_exception_handler(ValidationError('bad'), {})
        assert 'detail' not in self._body(response)

    def test_drf_validation_error_unified(self):
        response = unified_exception_handler(DRFValidationError({'payer': ['required']}), {})
        body = self._body(response)

        assert response.status_code == 400
        assert body['type'] == 'validation_error'
        assert body['detail']['payer'] == ['required']

    def test_parse_error_unified(self):
        response = unified_exception_handler(ParseError('JSON parse error'), {})
        assert response.status_code == 400
        assert self._body(response)['code'] == 'VALIDATION_ERROR'

    def test_other_drf_exceptions_use_default_handler(self):
        response = unified_exception_handler(NotAuthenticated(), {})
        assert response.status_code == 401

    def test_non_api_exception_not_handled(self):
        assert unified_exception_handler(RuntimeError('unexpected'), {}) is None

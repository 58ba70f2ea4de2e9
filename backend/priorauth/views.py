"""
HTTP 层：解析请求 → 调 PriorAuthLifecycle → 序列化。

业务异常不在这里处理，统一交给 exception_handler.unified_exception_handler。
tenant / actor 由上游认证中间件写入 X-Tenant-ID / X-User-ID 请求头。
"""

from rest_framework.response import Response
from rest_framework.views import APIView

from . import serializers
from .exceptions import ValidationError
from .services import PriorAuthLifecycle
from .validation import parse_create_input, parse_list_params, parse_update_input


def get_lifecycle():
    return PriorAuthLifecycle()


def request_context(request):
    """返回 (tenant_id, actor_id)。缺 tenant 直接 400。"""
    tenant_id = (request.headers.get('X-Tenant-ID') or '').strip()
    actor_id = (request.headers.get('X-User-ID') or '').strip() or None
    if not tenant_id:
        raise ValidationError(
            message='Missing tenant context',
            code='MISSING_TENANT',
            detail={'errors': [{'field': 'X-Tenant-ID', 'message': 'Header is required.'}]},
        )
    return tenant_id, actor_id


class PriorAuthRequestListView(APIView):
    """
    GET  /api/prior-auth-requests/ - 列表，支持 patientId / status / payer / limit / offset
    POST /api/prior-auth-requests/ - 新建 PA request
    """

    def get(self, request):
        tenant_id, _ = request_context(request)
        params = parse_list_params(request.query_params)
        records = get_lifecycle().list(tenant_id, **params)
        return Response(serializers.serialize_pa_list(records, params['limit'], params['offset']))

    def post(self, request):
        tenant_id, actor_id = request_context(request)
        data = parse_create_input(request.data)
        record = get_lifecycle().create(tenant_id, actor_id, data)
        return Response(serializers.serialize_pa_created(record), status=201)


class PriorAuthRequestDetailView(APIView):
    """
    GET   /api/prior-auth-requests/<id>/ - 单条记录
    PATCH /api/prior-auth-requests/<id>/ - 人工更新 status / statusReason / attachments
    """

    def get(self, request, pa_id):
        tenant_id, _ = request_context(request)
        record = get_lifecycle().get(tenant_id, pa_id)
        return Response({'data': serializers.serialize_pa_request(record)})

    def patch(self, request, pa_id):
        tenant_id, actor_id = request_context(request)
        fields = parse_update_input(request.data)
        record = get_lifecycle().update(tenant_id, actor_id, pa_id, fields)
        return Response(serializers.serialize_pa_updated(record))


class PriorAuthSubmitView(APIView):
    """POST /api/prior-auth-requests/<id>/submit - 提交给 payer"""

    def post(self, request, pa_id):
        tenant_id, actor_id = request_context(request)
        record, result = get_lifecycle().submit(tenant_id, actor_id, pa_id)
        return Response(serializers.serialize_submit_result(record, result))


class PriorAuthStatusView(APIView):
    """GET /api/prior-auth-requests/<id>/status - 向 payer 查询并对账"""

    def get(self, request, pa_id):
        tenant_id, actor_id = request_context(request)
        result = get_lifecycle().check_status(tenant_id, actor_id, pa_id)
        return Response(serializers.serialize_status_check(result))

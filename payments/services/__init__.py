from .gateways import GatewayEvent, PaystackAdapter, get_gateway
from .plans import InstallmentPlanTracker, split_course_fee
from .reconciler import ReconcileResult, WebhookReconciler
from .reporting import ReportingAggregator
from .store import PaymentRecordStore

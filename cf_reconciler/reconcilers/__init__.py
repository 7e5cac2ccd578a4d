from cf_reconciler.reconcilers.base import ResourceReconciler
from cf_reconciler.reconcilers.dns_record import DnsRecordReconciler
from cf_reconciler.reconcilers.security_rule import SecurityRuleReconciler
from cf_reconciler.reconcilers.zone import ZoneReconciler

__all__ = [
    "ResourceReconciler",
    "DnsRecordReconciler",
    "SecurityRuleReconciler",
    "ZoneReconciler",
]

"""Adaptadores CRM (cada módulo implementa `core.interfaces.crm.CRMAdapter`)."""

from adapters.crm.donorperfect import DonorPerfectAdapter
from adapters.crm.hubspot import HubSpotAdapter
from adapters.crm.salesforce import SalesforceAdapter

__all__ = [
	"DonorPerfectAdapter",
	"HubSpotAdapter",
	"SalesforceAdapter",
]

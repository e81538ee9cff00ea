from threatdesk.models.event_record import EventRecord
from threatdesk.models.alert_record import AlertRecord
from threatdesk.models.ip_reputation import IPReputationRecord

__all__ = ["EventRecord", "AlertRecord", "IPReputationRecord"]

# Alerts Feature - Router

from fastapi import APIRouter, Depends, status
from carelink.features.alerts.schemas import (
    MedicationEventRequest,
    ResolveAlertRequest,
    SOSAlertEnvelope,
    SOSAlertListResponse,
    TriggerSOSRequest,
)
from carelink.features.alerts.service import AlertDispatcher
from carelink.features.alerts.dependencies import get_dispatcher
from carelink.features.auth.dependencies import get_current_user
from carelink.features.auth.models import User
from carelink.shared.schemas import StatusResponse


router = APIRouter(prefix="/caregivers", tags=["SOS Alerts"])


@router.post("/sos", response_model=SOSAlertEnvelope, status_code=status.HTTP_201_CREATED)
async def trigger_sos(
    request: TriggerSOSRequest,
    current_user: User = Depends(get_current_user),
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    """
    Raise an SOS alert for the current user.

    The alert is stored with the list of caregivers notified, then pushed
    to every caregiver connected to the patient's room. The response does
    not wait for realtime delivery.
    """
    alert = await dispatcher.trigger_sos(str(current_user.id), request.location)

    return SOSAlertEnvelope(
        alert=AlertDispatcher.to_response(alert),
        message="SOS Alert broadcasted to all active caregivers",
    )


@router.get("/sos", response_model=SOSAlertListResponse)
async def list_my_alerts(current_user: User = Depends(get_current_user)):
    """Get the current user's SOS alerts, newest first."""
    alerts = await AlertDispatcher.list_alerts(str(current_user.id))

    return SOSAlertListResponse(
        alerts=[AlertDispatcher.to_response(alert) for alert in alerts],
        total=len(alerts),
    )


@router.patch("/sos/{alert_id}", response_model=SOSAlertEnvelope)
async def resolve_alert(
    alert_id: str,
    request: ResolveAlertRequest,
    current_user: User = Depends(get_current_user),
):
    """Close one of the current user's active alerts."""
    alert = await AlertDispatcher.resolve_alert(alert_id, str(current_user.id), request.status)

    return SOSAlertEnvelope(alert=AlertDispatcher.to_response(alert))


@router.post(
    "/medication-events",
    response_model=StatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def publish_medication_event(
    request: MedicationEventRequest,
    current_user: User = Depends(get_current_user),
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    """Tell the current user's connected caregivers about a medication event."""
    dispatcher.publish_medication_event(str(current_user.id), request.medicine, request.status)

    return StatusResponse(message="Medication update sent to caregivers")

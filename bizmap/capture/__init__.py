from bizmap.capture.flow import AdminCaptureFlow, CaptureForm, CaptureState, admin_from_url

__all__ = ["AdminCaptureFlow", "CaptureForm", "CaptureState", "admin_from_url"]

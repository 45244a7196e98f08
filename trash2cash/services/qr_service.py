import qrcode
import io
import hmac
import hashlib
import json
from trash2cash.core.errors import InvalidInput

class QRService:
    def __init__(self, secret_key: str, signed: bool = True):
        self.secret_key = secret_key
        self.signed = signed

    def _sign(self, data_str: str) -> str:
        return hmac.new(
            self.secret_key.encode(),
            data_str.encode(),
            hashlib.sha256
        ).hexdigest()

    def payload_for(self, token: str) -> str:
        """
        Generates the QR payload string for a session token. Signs it if enabled
        To ensure robust verification, the inner data is stringified first
        Structure: { "data_str": "{...json...}", "sig": "..." }
        """
        data_str = json.dumps({"v": 1, "sessionToken": token}, separators=(',', ':'))

        if self.signed:
            # Return a wrapper containing the stringified data and signature
            return json.dumps({"data_str": data_str, "sig": self._sign(data_str)})

        # Return the unsigned data string directly
        return data_str

    def verify_qr_payload(self, payload_str: str) -> dict | None:
        """
        Parses and verifies the QR payload
        Returns the data dict if valid, None otherwise
        """
        try:
            if self.signed:
                wrapper = json.loads(payload_str)
                data_str = wrapper.get("data_str")
                sig = wrapper.get("sig")

                if not data_str or not sig:
                    return None

                # Verify signature on the exact string received
                if hmac.compare_digest(sig, self._sign(data_str)):
                    return json.loads(data_str)
                return None
            else:
                return json.loads(payload_str)
        except (ValueError, TypeError, AttributeError):
            return None

    def token_from_payload(self, payload_str: str) -> str:
        data = self.verify_qr_payload(payload_str)
        token = data.get("sessionToken") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise InvalidInput("Invalid QR code")
        return token

    @staticmethod
    def create_qr_image(data_str: str) -> bytes:
        """
        Creates a QR code image and returns the PNG bytes
        """
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(data_str)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        return buffered.getvalue()

from .base import BaseNodeKind, ConfigValidationError, non_negative_int, optional_text


class ProxyNode(BaseNodeKind):
    """Route the browser session of the flow through a proxy server."""

    NODE_TYPE = "proxy"
    LABEL = "Proxy"
    DESCRIPTION = "Configure a proxy for subsequent steps"
    PARAMS = {
        "host": {
            "type": "string",
            "description": "Proxy address (e.g., socks5://1234:433)",
        },
        "port": {"type": "int", "description": "Proxy port"},
        "bypassList": {
            "type": "list",
            "description": "Hosts that skip the proxy (e.g., example1.com, example2.com)",
        },
    }
    DEFAULTS = {"host": "", "port": 433, "bypassList": []}

    MAX_PORT = 65535

    @classmethod
    def validate(cls, values, required=True):
        # Every proxy field is optional, so `required` changes nothing here
        description = optional_text(values, "description", "Description must be text")
        host = optional_text(values, "host", "Host must be text").strip()

        port = non_negative_int(values, "port", "Port must be a non-negative number")
        if port > cls.MAX_PORT:
            raise ConfigValidationError("port", f"Port must be at most {cls.MAX_PORT}")

        return description, {
            "host": host,
            "port": port,
            "bypassList": cls.parse_bypass_list(values.get("bypassList")),
        }

    @staticmethod
    def parse_bypass_list(raw):
        # The dialog sends a textarea ("a.com, b.com"); API clients may send a list
        if raw is None:
            return []
        if isinstance(raw, str):
            entries = raw.replace("\n", ",").split(",")
        elif isinstance(raw, (list, tuple)):
            entries = raw
        else:
            raise ConfigValidationError("bypassList", "Bypass list must be text or a list")
        return [str(e).strip() for e in entries if str(e).strip()]

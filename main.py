import os, sys

ALLOWED_SERVICES = {"api", "worker"}
PORT = os.getenv("PORT", "8000")

def exec_cmd(cmd):
    os.execvp(cmd[0], cmd)

def detect_service(environ):
    raw_service = environ.get("CUSTOMS_SERVICE", "").lower().strip()
    if raw_service in ALLOWED_SERVICES:
        return raw_service
    if raw_service or environ.get("PORT"):
        return "api"
    deploy_name = environ.get("RAILWAY_SERVICE_NAME", "").lower()
    if "worker" in deploy_name:
        return "worker"
    return "api"

def build_command(service, port=PORT):
    if service == "worker":
        return [sys.executable, "-m", "customs_worker.worker"]
    return [
        "uvicorn",
        "customs_api.main:create_app",
        "--factory",
        "--app-dir",
        "apps/api/src",
        "--host",
        "0.0.0.0",
        "--port",
        port,
    ]

def main() -> None:
    raw_service = os.environ.get("CUSTOMS_SERVICE", "").lower().strip()
    service = detect_service(os.environ)
    if raw_service and raw_service not in ALLOWED_SERVICES:
        print(f"Warning: CUSTOMS_SERVICE={raw_service} is invalid; defaulting to api")

    print(f"Customs launcher: service={service} port={PORT}")
    exec_cmd(build_command(service))


if __name__ == "__main__":
    main()

import os
import socket
import subprocess
import sys
import uvicorn

def get_lan_ip():
    try:
        # Connect to a public DNS server to determine the route
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"

def generate_self_signed_cert(cert_file="cert.pem", key_file="key.pem"):
    if os.path.exists(cert_file) and os.path.exists(key_file):
        print("Using existing SSL certificates.")
        return

    print("Generating self-signed SSL certificates for HTTPS...")
    try:
        # Use openssl if available
        subprocess.check_call([
            "openssl", "req", "-x509", "-newkey", "rsa:4096", "-keyout", key_file,
            "-out", cert_file, "-days", "365", "-nodes",
            "-subj", "/CN=localhost"
        ])
        print("Certificates generated.")
    except FileNotFoundError:
        print("OpenSSL not found. Falling back to the 'cryptography' package.")
        generate_cert_python(cert_file, key_file)
    except subprocess.CalledProcessError as e:
        print(f"Failed to generate certs: {e}")
        sys.exit(1)

def generate_cert_python(cert_file, key_file):
    import datetime
    from cryptography import x509
    from cryptography.x509.oid import NameOID
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Trash2Cash Station"),
        x509.NameAttribute(NameOID.COMMON_NAME, "localhost"),
    ])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = x509.CertificateBuilder().subject_name(subject).issuer_name(issuer).public_key(
        key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now
    ).not_valid_after(
        now + datetime.timedelta(days=365)
    ).add_extension(
        x509.SubjectAlternativeName([x509.DNSName("localhost")]),
        critical=False,
    ).sign(key, hashes.SHA256())

    with open(key_file, "wb") as f:
        f.write(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ))
    with open(cert_file, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))

    print("Certificates generated using Python cryptography.")

def main():
    lan_ip = get_lan_ip()
    port = int(os.getenv("PORT", "8000"))
    use_tls = os.getenv("USE_TLS", "true").lower() in {"1", "true", "yes"}

    cert_file = "cert.pem"
    key_file = "key.pem"

    # Phones scanning the QR code reach the station over the LAN
    if use_tls:
        generate_self_signed_cert(cert_file, key_file)

    scheme = "https" if use_tls else "http"
    print("\n" + "="*60)
    print("STATION BACKEND STARTING")
    print(f"LAN URL:  {scheme}://{lan_ip}:{port}")
    print(f"Local:    {scheme}://127.0.0.1:{port}")
    print("="*60 + "\n")

    uvicorn.run(
        "trash2cash.main:app",
        host="0.0.0.0",
        port=port,
        ssl_keyfile=key_file if use_tls else None,
        ssl_certfile=cert_file if use_tls else None,
    )

if __name__ == "__main__":
    main()

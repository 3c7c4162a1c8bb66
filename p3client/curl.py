import requests


def format_curl(prepared: requests.PreparedRequest, data_file: str = None) -> str:
    """Render a signed request as an equivalent curl command."""
    parts = [f"curl -X {prepared.method} {prepared.url}"]
    if data_file:
        parts.append(f'--data-binary "@{data_file}"')
    for name, value in prepared.headers.items():
        # curl computes the length from --data-binary
        if name.lower() == 'content-length':
            continue
        parts.append(f'-H "{name}: {value}"')
    return ' '.join(parts)

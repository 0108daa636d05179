"""
Example: Decode a JSON response into a dataclass.

`Response.json(target)` reads the body once, closes the connection and
builds `target` from the parsed document.
"""

from dataclasses import dataclass, field

from bodyflow import Client


@dataclass
class Slideshow:
    title: str
    author: str
    slides: list[dict] = field(default_factory=list)


def main():
    client = Client()
    response = client.get("https://httpbin.org/json")
    if response.error is not None:
        print(f"Request failed: {response.error}")
        return

    print(f"Status: {response.status_code} ok={response.ok}")
    document = response.json(dict)
    show = Slideshow(**document["slideshow"]) if document else None
    print(f"Slideshow: {show}")

    # Sending JSON works the same way as form data.
    response = client.post("https://httpbin.org/post", json={"name": "bodyflow", "id": 123})
    print(f"\nPOST Status: {response.status_code}")
    print(f"Echoed: {response.text[:200]}")


if __name__ == "__main__":
    main()

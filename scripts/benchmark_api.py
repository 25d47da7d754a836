import os
import sys
import json
import time
import mimetypes
import requests
from pathlib import Path


def run_benchmark(image_dir: str = "./sample_images", resolution: str = ""):
    base_url = os.environ.get("BGREMOVAL_URL", "http://localhost:3000")
    api_url = f"{base_url}/remove-background"
    out_dir = Path("./benchmark_output")
    out_dir.mkdir(exist_ok=True)

    images = sorted(Path(image_dir).glob("*"))
    params = {"resolution": resolution} if resolution else {}
    results = []

    for img_path in images:
        if img_path.suffix.lower() not in ['.jpg', '.jpeg', '.png', '.webp']:
            continue

        print(f"Processing {img_path.name}...")
        content_type = mimetypes.guess_type(img_path.name)[0] or "application/octet-stream"

        try:
            start = time.time()
            with open(img_path, "rb") as f:
                response = requests.post(
                    api_url,
                    files={"image": (img_path.name, f, content_type)},
                    params=params,
                    timeout=120,
                )
            elapsed_ms = int((time.time() - start) * 1000)

            if response.status_code == 200:
                out_path = out_dir / f"{img_path.stem}-no-bg.png"
                out_path.write_bytes(response.content)
                results.append({
                    "filename": img_path.name,
                    "status": response.status_code,
                    "elapsed_ms": elapsed_ms,
                    "output_size": len(response.content),
                    "content_type": response.headers.get("Content-Type"),
                })
            else:
                print(f"Error from API for {img_path.name}: {response.status_code} - {response.text}")
                results.append({
                    "filename": img_path.name,
                    "status": response.status_code,
                    "elapsed_ms": elapsed_ms,
                    "error": response.json().get("error") if response.headers.get("Content-Type", "").startswith("application/json") else response.text,
                })

        except requests.RequestException as e:
            print(f"Error processing {img_path.name}: {str(e)}")
            results.append({
                "filename": img_path.name,
                "status": "ERROR",
                "error": str(e)
            })

    with open(out_dir / "benchmark.json", "w") as f:
        json.dump(results, f, indent=2)

    print(f"Benchmark complete. Results saved to {out_dir / 'benchmark.json'}")


if __name__ == "__main__":
    run_benchmark(*sys.argv[1:3])

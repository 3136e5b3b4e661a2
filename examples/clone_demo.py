"""Example script demonstrating concurrent voice clone jobs."""

from __future__ import annotations

import asyncio
import sys

from voiceclone.cloning import CloneOrchestrator
from voiceclone.core.config import settings
from voiceclone.core.models import CloneJob, LanguageCode


def on_tick(job: CloneJob) -> None:
    print(f"   ⏳ {job.job_id}: still processing (poll {job.poll_count})")


async def main(reference_audio: str) -> None:
    """Clone one reference voice into several languages at once."""
    print("🎭 Voice Clone Demo")
    print("=" * 50)
    print(f"🔗 Backend: {settings.api_base_url}")
    print(f"🎤 Reference voice: {reference_audio}")
    print(f"🌍 Supported languages: {', '.join(LanguageCode.get_supported_codes())}")

    example_texts = [
        ("你好，今天过得怎么样？", "zh-CN"),
        ("This is a demonstration of voice cloning technology.", "en-US"),
        ("今日はいい天気ですね。", "ja-JP"),
    ]

    async with CloneOrchestrator() as orchestrator:
        handles = [
            orchestrator.submit_clone_job(reference_audio, text, language, on_tick=on_tick)
            for text, language in example_texts
        ]

        for i, ((text, language), handle) in enumerate(zip(example_texts, handles), 1):
            outcome = await handle.wait()
            print(f"\n{'='*20} Example {i} {'='*20}")
            print(f"📝 Text ({language}): {text}")
            if outcome.succeeded:
                path = await orchestrator.client.download_artifact(outcome.artifact_location)
                print(f"🎵 Audio: {outcome.artifact_location}")
                print(f"💾 Audio saved: {path}")
            else:
                print(f"❌ {outcome.state.value}: {outcome.reason}")

    print(f"\n{'='*50}")
    print("✅ Voice clone demonstration completed!")
    print("\n💡 Tips:")
    print("- Provide a clear reference recording of 10-30 seconds")
    print("- Set VOICECLONE_API_BASE_URL to point at your backend")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python examples/clone_demo.py REFERENCE_AUDIO")
        sys.exit(2)
    asyncio.run(main(sys.argv[1]))

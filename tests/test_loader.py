from swiper.loader import on_shutdown, on_startup


async def test_startup_and_shutdown_with_refresh_disabled(context, explore_source):
    await on_startup(context)

    assert context.refresh_job.is_running is False
    assert context.zora_client._session is not None

    await on_shutdown(context)

    assert context.zora_client._session is None
    explore_source.fetch.assert_not_awaited()


async def test_startup_starts_refresh_timer(context, explore_source):
    context.settings.refresh.enabled = True

    await on_startup(context)
    assert context.refresh_job.is_running is True

    await on_shutdown(context)
    assert context.refresh_job.get_status().is_running is False
